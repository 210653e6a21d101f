"""Server-side render API runner.

The build prepends a ``PLUGINS`` list of ``{"plugin": <module path>, "options": {...}}``
entries when this file is copied into the cache directory.
"""

import importlib.util
from pathlib import Path

_loaded = {}


def _load(module_path):
    if module_path not in _loaded:
        path = Path(module_path).with_suffix(".py")
        spec = importlib.util.spec_from_file_location("site_ssr_" + str(len(_loaded)), path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        _loaded[module_path] = module
    return _loaded[module_path]


def api_runner(api, args=None, default_return=None):
    """Call ``api`` on every SSR plugin in order and return the non-None results."""

    results = []
    for entry in globals().get("PLUGINS", []):
        handler = getattr(_load(entry["plugin"]), api, None)
        if handler is None:
            continue
        result = handler(dict(args or {}), entry["options"])
        if result is not None:
            results.append(result)
    return results or ([default_return] if default_return is not None else [])
