import sys
from pathlib import Path
from typing import Any, List

import pytest

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'statewright', and tests/ for the helpers package.
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from statewright import (  # noqa: E402
    ActionRegistry,
    GuardRegistry,
    Specification,
    SpecificationBuilder,
)
from statewright.logging_setup import reset_stdlib_logging_for_tests  # noqa: E402
from helpers.hosts import Host  # noqa: E402


@pytest.fixture
def host() -> Host:
    return Host()


@pytest.fixture
def calls() -> List[Any]:
    """Ordered log that hooks append to."""
    return []


@pytest.fixture
def guards() -> GuardRegistry:
    return GuardRegistry()


@pytest.fixture
def actions() -> ActionRegistry:
    return ActionRegistry()


@pytest.fixture
def review_spec() -> Specification:
    """new -submit-> awaiting_review -review-> being_reviewed {accept, reject}."""
    return (
        SpecificationBuilder("article")
        .state("new").event("submit", to="awaiting_review")
        .state("awaiting_review").event("review", to="being_reviewed")
        .state("being_reviewed")
        .event("accept", to="accepted")
        .event("reject", to="rejected")
        .state("accepted")
        .state("rejected")
        .build()
    )


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    reset_stdlib_logging_for_tests()
