"""Common literal values used across pagedmd.

These constants keep filenames, defaults and timing windows centralized so the
loader, resolver, assembler, watcher and tests import the same values without
drifting. Intended for internal use within the pagedmd package.

Examples
--------
>>> from pagedmd import _constants
>>> _constants.MANIFEST_FILENAME
'manifest.yaml'
>>> _constants.MIN_PLUGIN_PRIORITY <= _constants.DEFAULT_PLUGIN_PRIORITY
True
"""

MANIFEST_FILENAME = "manifest.yaml"
BUILD_META_FILENAME = ".pagedmd-build-meta.json"
DEFAULT_OUTPUT_DIRNAME = "build"
DEFAULT_OUTPUT_FILENAME = "index.html"

CONTENT_SUFFIX = ".md"
PLUGIN_SCRIPT_SUFFIX = ".py"
WATCHED_SUFFIXES = frozenset({".md", ".yaml", ".yml", ".css", ".py"})

DEFAULT_PLUGIN_PRIORITY = 100
MIN_PLUGIN_PRIORITY = 0
MAX_PLUGIN_PRIORITY = 1000

DEFAULT_TITLE = "Untitled"
DEFAULT_FORMAT = "html"
OUTPUT_FORMATS = ("html", "pdf", "preview")
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_PAGE_SIZE = "letter"
DEFAULT_PAGE_MARGIN = "0.75in"

DEBOUNCE_SECONDS = 0.1
FAILURE_BACKOFF_SECONDS = (1.0, 2.0, 5.0, 10.0, 30.0)
REMOTE_FETCH_TIMEOUT_SECONDS = 30
