SUMMARIZE_SYSTEM = """\
Summarize the following project plan in 2-4 sentences: what is being built,
the key technologies, and the main deliverables. Plain text only.
"""

HISTORY_SUMMARY_SYSTEM = """\
Summarize this conversation between a user and a project-planning assistant
in at most 5 sentences. Keep every stated requirement, technology choice and
constraint. Plain text only.
"""
