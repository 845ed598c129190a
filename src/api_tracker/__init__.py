"""
API Tracker - API compatibility timeline of a Java library

Dumps the public API of every release archive, matches archives across
consecutive releases, runs the compatibility analyzer on every matched pair
and folds the results into one backward compatibility rate per version pair.
Everything is cached, so a run only recomputes what changed.
"""

__version__ = "1.0.0"

from .config import TrackerConfig, load_config
from .pipeline import BuildStats, RunContext, open_run, run_build
from .profile import Profile, load_profile
from .store import TrackerStore
from .timeline import Timeline, archives_report, build_timeline

__all__ = [
    "BuildStats",
    "Profile",
    "RunContext",
    "Timeline",
    "TrackerConfig",
    "TrackerStore",
    "archives_report",
    "build_timeline",
    "load_config",
    "load_profile",
    "open_run",
    "run_build",
]
