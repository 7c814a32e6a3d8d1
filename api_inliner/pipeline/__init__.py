"""Package boundary for the build pipeline.

This package groups the inliner and the site builder it attaches to. It
contains no logic of its own.

Examples
--------
>>> import api_inliner.pipeline
>>> hasattr(api_inliner.pipeline, "__file__")
True

"""
