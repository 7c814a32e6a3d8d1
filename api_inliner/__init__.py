"""API Inliner package.

This module serves as the root of the API Inliner Python package, which
fetches remote JSON data while a static site is being built and inlines it
into the generated HTML as global variables, optionally persisting each
response as a JSON artifact and emitting a TypeScript declaration file.

Package Structure
-----------------
- `pipeline/inliner/`:
    Endpoint resolution, resilient concurrent fetching with fallback data,
    artifact and declaration writers, HTML injection and the CLI.
- `pipeline/site_builder/`:
    Minimal static-site builder exposing the lifecycle hooks the inliner
    attaches to.
- `config.py`: All configuration constants (paths, defaults, limits), as UPPER_SNAKE_CASE.
- `exceptions.py`: All project-specific exception classes.

Examples
--------
Basic import pattern:

>>> import api_inliner
>>> # See api_inliner.pipeline.inliner.cli for the command-line entrypoint.

"""
