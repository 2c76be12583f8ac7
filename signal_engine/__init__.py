"""
Performance Signal Engine Package.

Pure, deterministic computation layer behind the agency operations dashboard.
Turns delivery snapshots (jobs, deliverables, tasks, time entries, team
capacity) into the derived reports the dashboard renders.

Subpackages:
    - core: Configuration, clock/date helpers, numeric helpers, logging setup
    - models: Pydantic schemas and enums
    - services: One stateless module per engine component
    - tests: Pytest suite

Every entry point is a synchronous, side-effect-free function of its inputs
and an injectable "today"; nothing in this package performs I/O.
"""

__version__ = "1.0.0"
