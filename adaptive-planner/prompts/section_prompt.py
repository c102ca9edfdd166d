SECTION_SYSTEM = """\
You are an expert technical writer producing ONE section of a project plan.
The content must be detailed, specific and implementation-ready: clear
subsections, concrete technology names and versions, example configuration
where it helps. Stay consistent with the sections already written and do not
repeat them. Output markdown only, without the section title heading.
"""

SECTION_HUMAN = """\
Project request: "{prompt}"

Project context:
- Project type: {category}
- Technologies: {technologies}
- Complexity: {complexity}

Section to write: {title}
Purpose: {description}
Intent: {intent}

{previous_sections}
"""

FIRST_SECTION_NOTE = "This is the first section of the plan."
