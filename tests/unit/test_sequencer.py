"""
Tests for the phased startup sequencer.
"""

import shutil

import pytest

from stackup.config.environment import Platform, RunContext
from stackup.config.settings import StackSettings
from stackup.core.selection import Service, ServiceSelection
from stackup.core.sequencer import (
    SUPABASE_DB_CONTAINER,
    StartupSequencer,
    build_service_groups,
    require_directory,
    supabase_phases,
)
from stackup.exceptions import DirectoryMissing
from stackup.setup.docker_manager import ComposeDialect, DockerManager


@pytest.fixture
def healthy_runner(runner):
    runner.on("docker", "inspect", SUPABASE_DB_CONTAINER, stdout="healthy\n")
    return runner


@pytest.fixture
def make_sequencer(context, display, sleeper):
    def factory(runner, ctx=None):
        ctx = ctx or context
        docker = DockerManager(ctx.dialect, runner)
        return StartupSequencer(ctx, docker, display, sleep=sleeper)

    return factory


def compose_calls(runner, subcommand):
    """Argument lists of compose calls for one subcommand, after `docker compose`."""
    return [call.cmd[2:] for call in runner.calls if call.cmd[:3] == ["docker", "compose", subcommand]]


class TestSupabasePhases:

    def test_phase_layout(self):
        phases = supabase_phases()

        assert len(phases) == 5
        assert phases[0].services == ("vector", "db")
        assert phases[0].wait_for == SUPABASE_DB_CONTAINER
        assert phases[0].then == ("kong",)
        assert phases[0].delay == 0
        assert [p.delay for p in phases[1:]] == [8.0, 8.0, 8.0, 5.0]
        assert phases[-1].services == ()

    def test_phase_order(self, healthy_runner, make_sequencer, settings):
        report = make_sequencer(healthy_runner).run(ServiceSelection(supabase=True))

        assert compose_calls(healthy_runner, "up") == [
            ["up", "-d", "vector", "db"],
            ["up", "-d", "kong"],
            ["up", "-d", "auth", "rest", "imgproxy"],
            ["up", "-d", "meta", "studio", "storage"],
            ["up", "-d", "realtime", "supavisor", "functions"],
            ["up", "-d"],
        ]
        assert all(
            call.cwd == settings.service_dir(Service.SUPABASE)
            for call in healthy_runner.calls
            if call.cmd[:2] == ["docker", "compose"]
        )
        assert report.started == [Service.SUPABASE]
        assert report.health_timeouts == []

    def test_health_wait_before_kong(self, healthy_runner, make_sequencer):
        make_sequencer(healthy_runner).run(ServiceSelection(supabase=True))

        lines = healthy_runner.lines
        inspect_at = lines.index("docker inspect supabase-db --format {{.State.Health.Status}}")
        assert lines.index("docker compose up -d vector db") < inspect_at
        assert inspect_at < lines.index("docker compose up -d kong")

    def test_phase_delays(self, healthy_runner, make_sequencer, sleeper):
        make_sequencer(healthy_runner).run(ServiceSelection(supabase=True))
        assert sleeper.calls == [8.0, 8.0, 8.0, 5.0]

    def test_health_timeout_does_not_abort(self, runner, display, sleeper, project_root):
        settings = StackSettings(project_root=project_root, health_timeout=4, health_poll_interval=2)
        context = RunContext(settings=settings, dialect=ComposeDialect.PLUGIN, platform=Platform.LINUX)
        runner.on("docker", "inspect", returncode=1)

        sequencer = StartupSequencer(context, DockerManager(runner=runner), display, sleep=sleeper)
        report = sequencer.run(ServiceSelection(supabase=True))

        assert report.health_timeouts == [SUPABASE_DB_CONTAINER]
        assert report.started == [Service.SUPABASE]
        assert len(compose_calls(runner, "up")) == 6
        assert "supabase-db did not become healthy within 4s" in display.output

    def test_compose_failure_skips_supabase(self, healthy_runner, make_sequencer, display):
        healthy_runner.on("docker", "compose", "up", returncode=1)

        report = make_sequencer(healthy_runner).run(ServiceSelection(supabase=True))

        assert report.started == []
        assert report.skipped == [Service.SUPABASE]
        assert len(compose_calls(healthy_runner, "up")) == 6
        assert "Failed to start vector, db" in display.output
        assert "Failed to start remaining services" in display.output
        assert "Supabase failed to start completely" in display.output
        assert "Supabase started successfully" not in display.output

    def test_single_phase_failure_skips_supabase(self, healthy_runner, make_sequencer, display):
        healthy_runner.on("docker", "compose", "up", "-d", "kong", returncode=1)

        report = make_sequencer(healthy_runner).run(ServiceSelection(supabase=True, portainer=True))

        assert report.skipped == [Service.SUPABASE]
        assert report.started == [Service.PORTAINER]
        assert "Failed to start kong" in display.output
        assert "Failed to start auth" not in display.output

    def test_recreate_runs_down_first(self, healthy_runner, make_sequencer):
        healthy_runner.on("docker", "compose", "down", returncode=1)

        report = make_sequencer(healthy_runner).run(ServiceSelection(supabase=True), recreate=True)

        compose = [call.cmd[2] for call in healthy_runner.calls if call.cmd[:2] == ["docker", "compose"]]
        assert compose[0] == "down"
        assert compose.count("down") == 1
        assert report.started == [Service.SUPABASE]

    def test_recreate_from_context(self, healthy_runner, display, sleeper, settings):
        context = RunContext(settings=settings, dialect=ComposeDialect.PLUGIN, platform=Platform.LINUX, recreate=True)
        sequencer = StartupSequencer(context, DockerManager(runner=healthy_runner), display, sleep=sleeper)

        sequencer.run(ServiceSelection(portainer=True))
        assert compose_calls(healthy_runner, "down") == [["down"]]

    def test_no_down_without_recreate(self, healthy_runner, make_sequencer):
        make_sequencer(healthy_runner).run(ServiceSelection(supabase=True, n8n=True))
        assert compose_calls(healthy_runner, "down") == []


class TestIndependentGroups:

    def test_start_order_and_directories(self, runner, make_sequencer, settings):
        report = make_sequencer(runner).run(
            ServiceSelection(n8n=True, npm=True, cloudflared=True, portainer=True),
        )

        up_dirs = [call.cwd for call in runner.calls if call.cmd[:3] == ["docker", "compose", "up"]]
        assert up_dirs == [
            settings.service_dir(Service.N8N),
            settings.service_dir(Service.NPM),
            settings.service_dir(Service.CLOUDFLARED),
            settings.service_dir(Service.PORTAINER),
        ]
        assert report.started == [Service.N8N, Service.NPM, Service.CLOUDFLARED, Service.PORTAINER]

    def test_pacing_between_groups(self, runner, make_sequencer, sleeper):
        make_sequencer(runner).run(ServiceSelection(n8n=True, npm=True, portainer=True))
        assert sleeper.calls == [2.0, 2.0]

    def test_pacing_without_n8n(self, runner, make_sequencer, sleeper):
        make_sequencer(runner).run(ServiceSelection(npm=True, portainer=True))
        assert sleeper.calls == [2.0, 2.0]

    def test_n8n_alone_not_paced(self, runner, make_sequencer, sleeper):
        make_sequencer(runner).run(ServiceSelection(n8n=True))
        assert sleeper.calls == []

    def test_no_pacing_before_first_group_after_supabase(self, healthy_runner, make_sequencer, sleeper):
        make_sequencer(healthy_runner).run(ServiceSelection(supabase=True, n8n=True))
        assert sleeper.calls == [8.0, 8.0, 8.0, 5.0]

    def test_missing_directory_skipped(self, runner, make_sequencer, settings, display):
        shutil.rmtree(settings.service_dir(Service.NPM))

        report = make_sequencer(runner).run(ServiceSelection(npm=True, portainer=True))

        assert report.skipped == [Service.NPM]
        assert report.started == [Service.PORTAINER]
        assert "Skipping npm (directory not found)" in display.output

    def test_compose_failure_skips_group(self, runner, make_sequencer, display):
        runner.on("docker", "compose", "up", returncode=1)

        report = make_sequencer(runner).run(ServiceSelection(portainer=True))

        assert report.skipped == [Service.PORTAINER]
        assert "Portainer failed to start" in display.output

    def test_n8n_env_file_passed_to_compose(self, runner, make_sequencer, settings):
        settings.env_file(Service.N8N).write_text("N8N_HOST=n8n.example.org\n")

        make_sequencer(runner).run(ServiceSelection(n8n=True))

        up = next(call for call in runner.calls if call.cmd[:3] == ["docker", "compose", "up"])
        assert up.env is not None
        assert up.env["N8N_HOST"] == "n8n.example.org"
        assert "PATH" in up.env

    def test_only_n8n_reads_env_file(self, settings):
        groups = build_service_groups(settings)
        assert groups[Service.N8N].env_file == settings.env_file(Service.N8N)
        assert all(groups[s].env_file is None for s in Service if s != Service.N8N)
        assert groups[Service.NPM].directory == settings.root / "proxy" / "npm"

    def test_require_directory(self, settings):
        group = build_service_groups(settings)[Service.PORTAINER]
        assert require_directory(group) == settings.service_dir(Service.PORTAINER)

        shutil.rmtree(group.directory)
        with pytest.raises(DirectoryMissing) as exc_info:
            require_directory(group)
        assert exc_info.value.directory == group.directory


class TestPrepull:

    def test_supabase_pulled_one_by_one(self, runner, make_sequencer, display):
        runner.on("docker", "compose", "config", "--services", stdout="db\nkong\nstudio\n")
        runner.on("docker", "compose", "pull", "-q", "kong", returncode=1)

        report = make_sequencer(runner).prepull(ServiceSelection(supabase=True))

        assert compose_calls(runner, "pull") == [
            ["pull", "-q", "db"],
            ["pull", "-q", "kong"],
            ["pull", "-q", "studio"],
        ]
        assert report.pulled == ["db", "studio"]
        assert report.skipped == ["kong"]
        assert "Pulling kong... SKIPPED" in display.output

    def test_n8n_without_env_file(self, runner, make_sequencer, display):
        report = make_sequencer(runner).prepull(ServiceSelection(n8n=True))

        assert compose_calls(runner, "pull") == []
        assert report.skipped == ["n8n"]
        assert "n8n/.env file not found! Skipping pre-pull." in display.output

    def test_n8n_with_env_file(self, runner, make_sequencer, settings):
        settings.env_file(Service.N8N).write_text("N8N_VERSION=1.64.0\n")

        report = make_sequencer(runner).prepull(ServiceSelection(n8n=True))

        pull = next(call for call in runner.calls if call.cmd[:3] == ["docker", "compose", "pull"])
        assert pull.cmd == ["docker", "compose", "pull", "-q"]
        assert pull.cwd == settings.service_dir(Service.N8N)
        assert pull.env["N8N_VERSION"] == "1.64.0"
        assert report.pulled == ["n8n"]

    def test_other_groups_not_pulled(self, runner, make_sequencer):
        make_sequencer(runner).prepull(ServiceSelection(npm=True, portainer=True))
        assert runner.calls == []


class TestShowRunning:

    def test_running_containers(self, runner, make_sequencer, display):
        runner.on("docker", "ps", stdout="n8n\tUp 1 minute\t0.0.0.0:5678->5678/tcp\nother\tUp\t\n")

        containers = make_sequencer(runner).show_running()

        assert [c.name for c in containers] == ["n8n"]
        assert "Startup Complete" in display.output
        assert "0.0.0.0:5678->5678/tcp" in display.output

    def test_no_containers(self, runner, make_sequencer, display):
        assert make_sequencer(runner).show_running() == []
        assert "No containers found" in display.output
