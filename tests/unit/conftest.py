from __future__ import annotations

import os

import pytest

import augent.config as config_module


@pytest.fixture(autouse=True)
def isolate_cache_dir(tmp_path):
    """Keep git checkouts and cached settings local to each test.

    Clones land in a per-test cache directory so tests never read or write a
    developer's real ``~/.cache/augent``.
    """

    original_cache_dir = os.environ.get("AUGENT_CACHE_DIR")
    original_settings = getattr(config_module, "_settings", None)
    os.environ["AUGENT_CACHE_DIR"] = str(tmp_path / ".augent-test-cache")
    config_module._settings = None

    try:
        yield
    finally:
        config_module._settings = original_settings
        if original_cache_dir is None:
            os.environ.pop("AUGENT_CACHE_DIR", None)
        else:
            os.environ["AUGENT_CACHE_DIR"] = original_cache_dir
