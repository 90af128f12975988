"""Tests for statistics aggregation, insight rules and the sweeping statistics service."""

from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from task_manager.exceptions import EntityNotFoundError, ValidationError
from task_manager.models.statistics import (
    Insight,
    InsightType,
    StatisticsSnapshot,
    completion_rate,
    generate_insights,
)
from task_manager.models.task import TaskStatus
from task_manager.repositories.memory import InMemoryTaskRepository
from task_manager.services.statistics_service import StatisticsService, sweep_tasks

from conftest import NOW, OTHER_OWNER, OWNER, make_task


class VanishingTaskRepository(InMemoryTaskRepository):
    """Repository whose tasks disappear right after they are loaded."""

    def find_tasks_by_owner(self, owner_id, status=None):
        tasks = super().find_tasks_by_owner(owner_id, status)
        for task in tasks:
            self.delete_task(task.id)
        return tasks


def tasks_with(**counts):
    tasks = []
    for status_name, number in counts.items():
        for _ in range(number):
            tasks.append(make_task(TaskStatus(status_name), task_id=f"t{len(tasks)}"))
    return tasks


class TestCompletionRate:
    """Test completion rate calculation."""

    def test_completion_rate(self):
        """Test failed tasks are left out of the denominator."""
        assert completion_rate(2, 5, 1) == 50
        assert completion_rate(1, 3, 0) == 33
        assert completion_rate(2, 3, 0) == 67

    def test_completion_rate_rounds_half_up(self):
        """Test 12.5% rounds up to 13%."""
        assert completion_rate(1, 8, 0) == 13

    def test_completion_rate_without_completable_tasks(self):
        """Test the rate is zero when nothing can be completed."""
        assert completion_rate(0, 0, 0) == 0
        assert completion_rate(0, 2, 2) == 0


class TestStatisticsSnapshot:
    """Test snapshot aggregation."""

    def test_empty_snapshot(self):
        """Test no tasks gives all-zero counts."""
        snapshot = StatisticsSnapshot.from_tasks([], NOW)

        assert snapshot.total == 0
        assert snapshot.completion_rate == 0
        assert all(count == 0 for count in snapshot.counts_by_status().values())

    def test_counts_by_status(self):
        """Test counts per status and the derived totals."""
        tasks = tasks_with(scheduled=1, pending=2, in_progress=3, completed=4, failed=1, cancelled=2)

        snapshot = StatisticsSnapshot.from_tasks(tasks, NOW)

        assert snapshot.total == 11
        assert snapshot.scheduled_count == 1
        assert snapshot.pending_count == 2
        assert snapshot.in_progress_count == 3
        assert snapshot.completed_count == 4
        assert snapshot.failed_count == 1
        assert snapshot.cancelled_count == 2
        assert snapshot.active_count == 5
        assert snapshot.completion_rate == 40

    def test_overdue_count(self):
        """Test overdue counts uncompleted tasks past their deadline."""
        past = NOW - timedelta(hours=2)
        tasks = [
            make_task(TaskStatus.PENDING, deadline=past, task_id="a"),
            make_task(TaskStatus.IN_PROGRESS, deadline=past, task_id="b"),
            make_task(TaskStatus.COMPLETED, deadline=past, task_id="c"),
            make_task(TaskStatus.PENDING, deadline=NOW + timedelta(days=1), task_id="d"),
        ]

        assert StatisticsSnapshot.from_tasks(tasks, NOW).overdue_count == 2

    def test_summary_merges_pending_into_in_progress(self):
        """Test the compact summary reports pending plus in progress as in progress."""
        snapshot = StatisticsSnapshot.from_tasks(tasks_with(pending=2, in_progress=1, completed=1), NOW)

        assert snapshot.to_summary() == {
            "total": 4,
            "pending": 2,
            "in_progress": 3,
            "completed": 1,
            "completion_rate": 25,
        }

    def test_snapshot_is_immutable(self):
        """Test snapshots cannot be modified after creation."""
        snapshot = StatisticsSnapshot(total=1)
        with pytest.raises(PydanticValidationError):
            snapshot.total = 2


class TestInsights:
    """Test insight factories and rules."""

    def test_factories(self):
        """Test factory defaults for icon and priority."""
        danger = Insight.danger("Careful")

        assert danger.type == InsightType.DANGER
        assert danger.icon == "🚨"
        assert danger.priority == 3
        assert Insight.info("Hi").priority == 0
        assert Insight.success("Yay").priority == 1
        assert Insight.warning("Hmm").priority == 2

    def test_negative_priority_rejected(self):
        """Test priorities cannot be negative."""
        with pytest.raises(PydanticValidationError):
            Insight.info("Hi", -1)

    def test_no_tasks(self):
        """Test an empty account gets exactly one getting-started insight."""
        insights = generate_insights(StatisticsSnapshot())

        assert len(insights) == 1
        assert insights[0].type == InsightType.INFO
        assert insights[0].message == "You have no tasks yet. Create your first task!"

    def test_mixed_tasks_half_completed(self):
        """Test two completed, two pending and one failed task."""
        snapshot = StatisticsSnapshot.from_tasks(tasks_with(completed=2, pending=2, failed=1), NOW)

        insights = generate_insights(snapshot)

        assert snapshot.total == 5
        assert snapshot.completion_rate == 50
        assert [i.priority for i in insights] == [6, 2]
        assert insights[0].message == "Good job! You have completed 50% of your tasks."
        assert insights[1].message == "All tasks are on schedule. Keep it up!"

    def test_overdue_insight_comes_first(self):
        """Test overdue work outranks every other insight."""
        snapshot = StatisticsSnapshot(
            total=6, pending_count=1, completed_count=5, overdue_count=2, completion_rate=83
        )

        insights = generate_insights(snapshot)

        assert insights[0].type == InsightType.DANGER
        assert insights[0].priority == 10
        assert insights[0].message == "You have 2 overdue tasks. They need urgent attention!"
        assert insights[1].message == "Excellent! You have completed 83% of your tasks."
        assert len(insights) == 2

    def test_single_overdue_wording(self):
        """Test the singular overdue message."""
        snapshot = StatisticsSnapshot(total=1, pending_count=1, overdue_count=1)

        assert generate_insights(snapshot)[0].message == "You have 1 overdue task. Take care of it now!"

    def test_many_pending_tasks(self):
        """Test a large backlog produces a warning ahead of the other rules."""
        snapshot = StatisticsSnapshot(total=11, pending_count=11, completion_rate=0)

        insights = generate_insights(snapshot)

        assert [i.priority for i in insights] == [8, 5, 4, 2]
        assert insights[0].message == "You have 11 tasks not started yet. Prioritize them!"
        assert insights[1].message == "Your completion rate is low (0%). Keep pushing!"
        assert insights[2].message == "You have 11 tasks in progress. Stay focused!"

    def test_some_pending_tasks(self):
        """Test five to ten pending tasks produce an info insight."""
        snapshot = StatisticsSnapshot(total=5, pending_count=5, completion_rate=0)

        messages = [i.message for i in generate_insights(snapshot)]

        assert "You have 5 tasks not started yet." in messages

    def test_everything_completed(self):
        """Test a fully completed list is celebrated."""
        snapshot = StatisticsSnapshot.from_tasks(tasks_with(completed=1, cancelled=3), NOW)

        insights = generate_insights(snapshot)

        assert snapshot.total == 1
        assert [i.message for i in insights] == ["Perfect! You have completed every task!"]

    def test_high_completion_and_all_completed_both_fire(self):
        """Test five completed tasks get both the excellent and the perfect insight."""
        snapshot = StatisticsSnapshot.from_tasks(tasks_with(completed=5), NOW)

        insights = generate_insights(snapshot)

        assert [i.priority for i in insights] == [9, 7, 2]


class TestSweep:
    """Test automatic transitions applied by the sweep."""

    def test_sweep_activates_and_fails(self, repository):
        """Test due tasks are activated or failed and written back."""
        scheduled = repository.save_task(make_task(TaskStatus.SCHEDULED, start_date=NOW - timedelta(minutes=1)))
        late = repository.save_task(make_task(TaskStatus.IN_PROGRESS, deadline=NOW - timedelta(minutes=1)))
        fine = repository.save_task(make_task(TaskStatus.PENDING, deadline=NOW + timedelta(days=1)))

        changed = sweep_tasks(repository.find_tasks_by_owner(OWNER), repository, NOW)

        assert changed == 2
        assert repository.find_task_by_id(scheduled.id).status == TaskStatus.PENDING
        assert repository.find_task_by_id(late.id).status == TaskStatus.FAILED
        assert repository.find_task_by_id(fine.id).status == TaskStatus.PENDING

    def test_one_transition_per_sweep(self, repository):
        """Test a scheduled task past both dates activates first and fails on the next sweep."""
        stored = repository.save_task(make_task(
            TaskStatus.SCHEDULED,
            start_date=NOW - timedelta(days=2),
            deadline=NOW - timedelta(days=1),
        ))

        sweep_tasks(repository.find_tasks_by_owner(OWNER), repository, NOW)
        assert repository.find_task_by_id(stored.id).status == TaskStatus.PENDING

        sweep_tasks(repository.find_tasks_by_owner(OWNER), repository, NOW)
        assert repository.find_task_by_id(stored.id).status == TaskStatus.FAILED


class TestStatisticsService:
    """Test the statistics use case."""

    def test_compute_statistics_sweeps_first(self, task_service, statistics_service, clock):
        """Test statistics reflect automatic transitions that became due."""
        task_service.create_task(OWNER, "Later", start_date=NOW + timedelta(hours=1))
        task_service.create_task(OWNER, "Due soon", deadline=NOW + timedelta(hours=1))
        clock.advance(hours=2)

        report = statistics_service.compute_statistics(OWNER)

        assert report.snapshot.pending_count == 1
        assert report.snapshot.failed_count == 1
        assert report.snapshot.scheduled_count == 0
        assert task_service.count_by_status(OWNER, "failed") == 1

    def test_compute_statistics_is_scoped_to_owner(self, task_service, statistics_service):
        """Test other owners' tasks are not counted."""
        task_service.create_task(OWNER, "Mine")
        task_service.create_task(OTHER_OWNER, "Theirs")
        task_service.create_task(OTHER_OWNER, "Theirs too")

        report = statistics_service.compute_statistics(OWNER)

        assert report.snapshot.total == 1

    def test_write_back_failure_aborts_statistics(self, clock):
        """Test a failed write-back during the sweep propagates instead of returning counts."""
        repository = VanishingTaskRepository(clock)
        repository.save_task(make_task(TaskStatus.PENDING, deadline=NOW - timedelta(hours=1)))

        with pytest.raises(EntityNotFoundError):
            StatisticsService(repository, clock).compute_statistics(OWNER)

    def test_compute_statistics_requires_owner(self, statistics_service):
        """Test an owner is required."""
        with pytest.raises(ValidationError):
            statistics_service.compute_statistics("")

    def test_report_insights_for_new_user(self, statistics_service):
        """Test a user without tasks gets the getting-started insight."""
        report = statistics_service.compute_statistics(OWNER)

        assert report.snapshot.total == 0
        assert report.insights[0].type == InsightType.INFO
