import pytest

from studio.services.workflow import Workflow, select_workflow


@pytest.mark.parametrize("count, ceiling, expected", [
    (1, 2, Workflow.DIRECT),
    (2, 2, Workflow.DIRECT),
    (3, 2, Workflow.STAGED),
    (7, 7, Workflow.DIRECT),
    (9, 7, Workflow.STAGED),
])
def test_select_workflow(count, ceiling, expected):
    assert select_workflow(count, ceiling) == expected


@pytest.mark.parametrize("count, ceiling", [(0, 2), (-1, 2), (3, 0), (3, -5)])
def test_select_workflow_rejects_non_positive(count, ceiling):
    with pytest.raises(ValueError):
        select_workflow(count, ceiling)


def test_select_workflow_is_stable():
    """Same inputs always give the same answer."""
    assert {select_workflow(5, 4) for _ in range(10)} == {Workflow.STAGED}
