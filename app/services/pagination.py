"""Pagination of form questions at section breaks.

A section question always opens a new page and is shown as that page's
header. Pages are derived once per form load and never mutated.
"""

from typing import Optional, Sequence

from app.schemas.form import Question
from app.logging_config import get_logger

logger = get_logger(__name__)

Page = list[Question]


def split_pages(questions: Sequence[Question]) -> list[Page]:
    """Partition an ordered question list into pages.

    Args:
        questions: Questions in form order

    Returns:
        Ordered list of pages. A form without questions yields a single
        empty page; a form starting with a section does not get an empty
        page in front of it.

    Example:
        >>> [len(p) for p in split_pages([q1, q2, section, q3])]
        [2, 2]
    """
    pages: list[Page] = [[]]

    for question in questions:
        if question.is_section:
            pages.append([question])
        else:
            pages[-1].append(question)

    if len(pages) > 1 and not pages[0]:
        pages.pop(0)

    logger.debug(f"Split {len(questions)} questions into {len(pages)} pages")
    return pages


def page_index_of(pages: Sequence[Page], question_id: str) -> Optional[int]:
    """Find the index of the page containing a question.

    Args:
        pages: Output of split_pages
        question_id: Question identifier

    Returns:
        Page index, or None if no page contains the question
    """
    for index, page in enumerate(pages):
        if any(question.id == question_id for question in page):
            return index
    return None
