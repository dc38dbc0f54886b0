"""Points award and notification helpers: best effort, never raise."""
import pytest

from grievance_desk.services.side_effects import award_points, notify, points_for
from tests.fakes import InMemoryWorkflowRepository

TENANT = 1


@pytest.fixture()
def repo():
    return InMemoryWorkflowRepository()


@pytest.mark.parametrize("priority,points", [("high", 20), ("medium", 10), ("low", 5), ("bogus", 10)])
def test_points_by_priority(priority, points):
    assert points_for(priority) == points


class TestAwardPoints:
    def test_credits_staff_member(self, repo):
        staff = repo.add_staff_member(TENANT)
        task = repo.new_task(TENANT, category="water", priority="high")

        points, failure = award_points(repo, task, str(staff.id))

        assert (points, failure) == (20, None)
        assert staff.points == 20
        assert staff.task_type_history == {"water": 1}
        assert task.points_awarded == 20
        assert repo.commits == 1

    def test_history_accumulates_per_category(self, repo):
        staff = repo.add_staff_member(TENANT)
        for category in ("water", "water", "roads"):
            award_points(repo, repo.new_task(TENANT, category=category), str(staff.id))
        assert staff.points == 30
        assert staff.task_type_history == {"water": 2, "roads": 1}

    def test_unknown_actor_is_reported_not_raised(self, repo):
        task = repo.new_task(TENANT)

        points, failure = award_points(repo, task, "gateway-user")

        assert points is None
        assert failure.effect == "award_points"
        assert failure.entity_type == "task"
        assert failure.entity_id == task.id
        assert task.points_awarded is None
        assert repo.rollbacks == 1

    def test_staff_of_other_tenant_is_not_credited(self, repo):
        outsider = repo.add_staff_member(2)
        _, failure = award_points(repo, repo.new_task(TENANT), str(outsider.id))
        assert failure is not None
        assert outsider.points == 0

    def test_storage_failure_is_reported(self, repo):
        staff = repo.add_staff_member(TENANT)
        repo.fail_on_commit = True

        points, failure = award_points(repo, repo.new_task(TENANT), str(staff.id))

        assert points is None
        assert failure.message == "storage unavailable"
        assert repo.rollbacks == 1


class TestNotify:
    def test_one_record_per_distinct_recipient(self, repo):
        failure = notify(
            repo, tenant_id=TENANT, recipients=["event_manager", "event_manager", "", "5"],
            title="Approval required", entity_type="event", entity_id=3,
        )
        assert failure is None
        assert [n.recipient for n in repo.notifications] == ["event_manager", "5"]
        assert repo.commits == 1

    def test_no_recipients_is_a_no_op(self, repo):
        assert notify(repo, tenant_id=TENANT, recipients=[], title="x") is None
        assert repo.commits == 0

    def test_failure_is_returned(self, repo):
        repo.fail_on_commit = True
        failure = notify(repo, tenant_id=TENANT, recipients=["5"], title="x",
                         entity_type="event", entity_id=9)
        assert failure.effect == "notify"
        assert failure.entity_id == 9
        assert repo.rollbacks == 1
