# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Centralized constants for module discovery and pipeline defaults.

Eliminates magic strings and provides single source of truth for
discovery sources, manifest markers, and default option values.
"""

import os

# Entry point group scanned for extension units in installed packages
ENTRY_POINT_GROUP = 'lensmith.modules'

# Manifest entries whose value equals this marker are extension units;
# any other entry is unrelated metadata and is ignored
MANIFEST_MARKER = 'LensmithModule'

# Manifest file looked up in the project directory when none is configured
DEFAULT_MANIFEST_FILE = 'lensmith_modules.yaml'

# Discovery source names (reported by the CLI and in log messages)
SOURCE_STATIC = 'static'
SOURCE_CONFIG = 'config'
SOURCE_MANIFEST = 'manifest'
SOURCE_ENTRY_POINT = 'entry_point'

# Default pipeline option values
MB = 1024 * 1024
DEFAULT_MEMORY_CACHE_SIZE = 32 * MB
DEFAULT_BITMAP_POOL_SIZE = 64 * MB
DEFAULT_DISK_CACHE_SIZE = 250 * MB
DEFAULT_DISK_CACHE_DIR = 'image_manager_disk_cache'
DEFAULT_SOURCE_THREADS = max(1, os.cpu_count() or 1)
DEFAULT_DISK_CACHE_THREADS = 1
