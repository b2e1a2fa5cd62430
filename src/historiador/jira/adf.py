"""Atlassian Document Format (ADF) builders for story fields."""

BULLET = "• "
CRITERIA_SEPARATOR = "--- Criterios de Aceptación ---"


def new_document() -> dict:
    """Empty ADF document."""
    return {"type": "doc", "version": 1, "content": []}


def paragraph(text: str) -> dict:
    """Create paragraph node holding a single text run."""
    if not text:
        # Jira rejects empty text runs; an empty paragraph has no content
        return {"type": "paragraph", "content": []}
    return {"type": "paragraph", "content": [{"type": "text", "text": text}]}


def split_criteria(criteria_text: str) -> list[str]:
    """
    Split acceptance criteria into items.

    ';' wins over newlines as separator. Items are trimmed and empty ones
    dropped; if nothing is left the whole trimmed text is the only item.
    """
    separator = ";" if ";" in criteria_text else "\n"
    criteria = [part.strip() for part in criteria_text.split(separator) if part.strip()]
    if not criteria:
        criteria = [criteria_text.strip()]
    return criteria


def _append_criteria(doc: dict, criteria_text: str) -> None:
    criteria = split_criteria(criteria_text)
    if len(criteria) == 1:
        doc["content"].append(paragraph(criteria[0]))
        return
    for item in criteria:
        doc["content"].append(paragraph(BULLET + item))


def create_description_adf(description: str) -> dict:
    """Description as a single paragraph (empty document for empty text)."""
    doc = new_document()
    if description:
        doc["content"].append(paragraph(description))
    return doc


def create_acceptance_criteria_adf(criteria_text: str) -> dict:
    """One paragraph per criterion, bulleted when there is more than one."""
    doc = new_document()
    if criteria_text:
        _append_criteria(doc, criteria_text)
    return doc


def create_description_with_criteria_adf(description: str, criteria_text: str) -> dict:
    """Description followed by a separator and the acceptance criteria."""
    doc = new_document()

    if description:
        doc["content"].append(paragraph(description))

    if criteria_text:
        doc["content"].append(paragraph(""))
        doc["content"].append(paragraph(CRITERIA_SEPARATOR))
        _append_criteria(doc, criteria_text)

    return doc

