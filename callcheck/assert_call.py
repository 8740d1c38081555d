"""
assert_call rule: turn a detection result into a pass/fail verdict.

A check is configured with the function that should (or should not) be
called and, optionally, the function it must be called from. The report
entry fields (description, comment, type, suppress_if) are passed through
untouched for the reporting pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from .nodes import FunctionSignature
from .traversal import detect

logger = logging.getLogger(__name__)


class CommentType(Enum):
    ESSENTIAL = "essential"
    ACTIONABLE = "actionable"
    INFORMATIVE = "informative"
    CELEBRATORY = "celebratory"


class Verdict(Enum):
    PASS = "pass"
    FAIL = "fail"


@dataclass(frozen=True)
class Comment:
    """Report entry handed to the reporting pipeline."""

    name: str
    comment: Any
    type: CommentType
    suppress_if: Any = False


@dataclass(frozen=True)
class AssertCall:
    """
    Configuration of one assert_call check.

    comment may be a plain value or a zero-argument callable producing it;
    the callable is evaluated once per run and its errors propagate.
    """

    description: str
    comment: Any
    called_fn: FunctionSignature | None
    calling_fn: FunctionSignature | None = None
    should_call: bool = True
    type: CommentType = CommentType.INFORMATIVE
    suppress_if: Any = False

    @classmethod
    def build(
        cls,
        description: str,
        comment: Any,
        called_fn: str,
        calling_fn: str | None = None,
        **kwargs,
    ) -> "AssertCall":
        """Shorthand taking dotted signatures, e.g. called_fn=":math.pow"."""
        return cls(
            description=description,
            comment=comment,
            called_fn=FunctionSignature.parse(called_fn),
            calling_fn=FunctionSignature.parse(calling_fn) if calling_fn else None,
            **kwargs,
        )


def _evaluate(comment: Any) -> Any:
    if callable(comment):
        return comment()
    return comment


def run(check: AssertCall, ast: object) -> tuple[Verdict, Comment]:
    """Evaluate one check against a parsed tree."""
    report = Comment(
        name=check.description,
        comment=_evaluate(check.comment),
        type=check.type,
        suppress_if=check.suppress_if,
    )

    found = detect(ast, check.called_fn, check.calling_fn)
    verdict = Verdict.PASS if found == check.should_call else Verdict.FAIL
    logger.debug(
        f"assert_call '{check.description}': found={found} "
        f"should_call={check.should_call} -> {verdict.value}"
    )
    return verdict, report


def run_all(checks: Iterable[AssertCall], ast: object) -> list[tuple[Verdict, Comment]]:
    """Evaluate several checks against the same tree, in order."""
    return [run(check, ast) for check in checks]


def failures(results: Iterable[tuple[Verdict, Comment]]) -> list[Comment]:
    """Report entries of failed checks."""
    return [comment for verdict, comment in results if verdict is Verdict.FAIL]

