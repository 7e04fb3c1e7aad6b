"""
ui5kit package

This package implements a CLI-first build utility for OpenUI5 projects.

Key responsibilities are split across modules:
- `config.py`: parse the YAML project configuration into a typed model
- `context.py`: the build context threaded through every build step
- `pipeline.py`: sequential stages and fan-out/fan-in of independent tasks
- `library.py`: build the UI5 library from a downloaded source tree
- `themes.py`: compile theme stylesheets (LESS) with missing-include healing
- `placeholders.py`: copyright banner and placeholder substitution
- `minify.py`: script and stylesheet minification, debug resource naming
- `files.py`: deterministic file enumeration and copying
- `compress.py`: gzip and brotli pre-compression of the distribution
- `preload.py`: serialize preload bundles for the framework's module loader
- `cachebust.py`: content-hash bundle directories and rewrite the HTML entry
- `download.py`: isolated HTTP download and unzip of the framework archive
- `entry.py`: render the HTML entry point
- `app.py`: application distribution build
- `cli.py`: CLI entrypoint and orchestration
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
