"""Render queue — one RenderJob per region, run in parallel or one by one.

Everything that can fail without ffmpeg (region derivation, tree
building, graph wiring) happens in prepare_jobs(), before any process is
started. A job that fails while running does not stop its siblings.
"""

import logging
import time
from pathlib import Path

from .builder import build_timelines
from .job import RenderJob, Result
from .project import Project
from .settings import RenderSettings

logger = logging.getLogger(__name__)


def prepare_jobs(project: Project, settings: RenderSettings | None = None) -> list[RenderJob]:
    """Build the timelines and commands for every region of the project.

    Raises:
        RenderRegionError: regions could not be derived.
        GraphError: a filter graph could not be wired.
    """
    settings = settings or project.settings
    return [RenderJob.from_timeline(t, settings) for t in build_timelines(project)]


def _start(job: RenderJob):
    Path(job.filename).parent.mkdir(parents=True, exist_ok=True)
    job.start()


def _drive(jobs: list[RenderJob], poll_interval: float, on_update):
    running = list(jobs)
    while running:
        for job in list(running):
            state = job.poll()
            if on_update is not None:
                on_update(job, state)
            if job.exited:
                running.remove(job)
        if running:
            time.sleep(poll_interval)


def run_jobs(jobs: list[RenderJob], parallel: bool = True, poll_interval: float = 0.5,
             on_update=None) -> list[Result]:
    """Run jobs to completion and return their final states.

    Args:
        jobs: Prepared, not yet started jobs.
        parallel: Start all jobs at once; otherwise one after another.
        poll_interval: Seconds between polls.
        on_update: Optional callback(job, state), called on every poll.

    On KeyboardInterrupt every job is cancelled before re-raising.
    """
    try:
        if parallel:
            for job in jobs:
                _start(job)
            _drive(jobs, poll_interval, on_update)
        else:
            for job in jobs:
                _start(job)
                _drive([job], poll_interval, on_update)
    except KeyboardInterrupt:
        logger.warning("Interrupted, cancelling %d render(s)", len(jobs))
        for job in jobs:
            job.cancel()
        raise
    return [job.state for job in jobs]
