"""CLI for rendering — project manifest to one video per render region.

Settings are layered: defaults, then the manifest's render section, then
--settings, then --resolution-from / --fps-from.

Usage:
    trackcompose render --manifest project.yaml
    trackcompose render --manifest project.yaml --settings hq.yaml --serial
    trackcompose render --manifest project.yaml --validate
    trackcompose render --manifest project.yaml --script
"""

import argparse
import logging
import sys
from dataclasses import replace

from .errors import TrackComposeError
from .job import Result
from .probe import probe_media
from .project import load_project_manifest, validate_project_paths
from .regions import render_regions
from .render import prepare_jobs, run_jobs
from .settings import load_render_settings


class _Reporter:
    """Prints START, progress every 10%, and DONE/FAILED per job."""

    def __init__(self):
        self._last: dict[int, int] = {}

    def __call__(self, job, state):
        key = id(job)
        if key not in self._last:
            self._last[key] = -1
            print(f"  START  {job.filename}", flush=True)
        if isinstance(state, Result):
            if self._last[key] != 1000 and job.exited:
                self._last[key] = 1000
                if state.ok:
                    print(f"  DONE   {job.filename}", flush=True)
                else:
                    print(f"  FAILED {job.filename}: {state.error}", flush=True)
            return
        step = int(state.fraction * 10)
        if step > self._last[key]:
            self._last[key] = step
            status = job.status
            speed = f"  speed={status.speed}" if status.speed else ""
            print(f"  {state.fraction * 100:5.1f}%  {job.filename}{speed}", flush=True)


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a multi-track project manifest with ffmpeg.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to project YAML manifest",
    )
    parser.add_argument(
        "--settings", default=None,
        help="Render settings YAML (overrides the manifest's render section)",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest and media paths only, don't render",
    )
    parser.add_argument(
        "--script", action="store_true",
        help="Print the ffmpeg command for each region, don't render",
    )
    parser.add_argument(
        "--serial", action="store_true",
        help="Render regions one at a time instead of in parallel",
    )
    parser.add_argument(
        "--poll-interval", type=float, default=0.5,
        help="Seconds between progress updates (default: 0.5)",
    )
    parser.add_argument(
        "--resolution-from", default=None, metavar="FILE",
        help="Use the resolution of this video file for the output",
    )
    parser.add_argument(
        "--fps-from", default=None, metavar="FILE",
        help="Use the framerate of this video file for the output",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Log commands and ffmpeg output",
    )
    parsed = parser.parse_args(args)

    if parsed.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        project = load_project_manifest(parsed.manifest)
        settings = project.settings
        if parsed.settings:
            settings = load_render_settings(parsed.settings, base=settings)
        if parsed.resolution_from:
            settings = replace(settings, resolution=probe_media(parsed.resolution_from).resolution)
        if parsed.fps_from:
            settings = replace(settings, fps=probe_media(parsed.fps_from).fps)

        validate_project_paths(project)

        if parsed.validate:
            regions = render_regions(project)
            print(f"Project manifest valid: {len(project.tracks)} tracks, {len(regions)} region(s)")
            for region in regions:
                print(f"  {region.name}: {region.start}s - {region.end}s -> "
                      f"{region.output}.{settings.extension}")
            print("All paths verified.")
            return

        jobs = prepare_jobs(project, settings)

        if parsed.script:
            for job in jobs:
                print(job.render_script)
            return

        mode = "serial" if parsed.serial or not settings.parallel else "parallel"
        print(f"Rendering {len(jobs)} region(s) ({mode})...")
        results = run_jobs(
            jobs,
            parallel=mode == "parallel",
            poll_interval=parsed.poll_interval,
            on_update=_Reporter(),
        )
    except TrackComposeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    failed = [job for job, result in zip(jobs, results) if not result.ok]
    if failed:
        print(f"\n{len(failed)} of {len(jobs)} render(s) failed.")
        sys.exit(1)
    print(f"\nDone: {len(jobs)} render(s).")


if __name__ == "__main__":
    main()
