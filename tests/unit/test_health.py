"""
Tests for the container health waiter.
"""

from stackup.core.health import HealthWaiter
from stackup.setup.docker_manager import HEALTH_NOT_FOUND


class ScriptedDocker:
    """Returns health statuses from a script, repeating the last one."""

    def __init__(self, statuses):
        self.statuses = list(statuses)
        self.polls = 0

    def health_status(self, container_name):
        index = min(self.polls, len(self.statuses) - 1)
        self.polls += 1
        return self.statuses[index]


class TestHealthWaiter:

    def test_healthy_immediately(self, display, sleeper):
        docker = ScriptedDocker(["healthy"])
        waiter = HealthWaiter(docker, display, interval=2, sleep=sleeper)

        assert waiter.wait_healthy("supabase-db", 60) is True
        assert docker.polls == 1
        assert sleeper.calls == []
        assert "supabase-db is healthy" in display.output

    def test_healthy_after_a_few_polls(self, display, sleeper):
        docker = ScriptedDocker(["starting", "starting", "healthy"])
        waiter = HealthWaiter(docker, display, interval=2, sleep=sleeper)

        assert waiter.wait_healthy("supabase-db", 60) is True
        assert sleeper.calls == [2, 2]

    def test_missing_container_keeps_polling(self, display, sleeper):
        docker = ScriptedDocker([HEALTH_NOT_FOUND, HEALTH_NOT_FOUND, "healthy"])
        waiter = HealthWaiter(docker, display, interval=2, sleep=sleeper)

        assert waiter.wait_healthy("supabase-db", 60) is True
        assert docker.polls == 3

    def test_timeout(self, display, sleeper):
        docker = ScriptedDocker(["unhealthy"])
        waiter = HealthWaiter(docker, display, interval=2, sleep=sleeper)

        assert waiter.wait_healthy("supabase-db", 6) is False
        assert docker.polls == 3
        assert sum(sleeper.calls) == 6
        assert "supabase-db did not become healthy within 6s" in display.output

    def test_polls_bounded_by_timeout_over_interval(self, display, sleeper):
        docker = ScriptedDocker(["starting"])
        waiter = HealthWaiter(docker, display, interval=2, sleep=sleeper)

        assert waiter.wait_healthy("supabase-db", 60) is False
        assert docker.polls == 30

    def test_zero_timeout_never_polls(self, display, sleeper):
        docker = ScriptedDocker(["healthy"])
        waiter = HealthWaiter(docker, display, interval=2, sleep=sleeper)

        assert waiter.wait_healthy("supabase-db", 0) is False
        assert docker.polls == 0
