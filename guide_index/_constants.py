"""Common literal values used across guide_index.

These constants keep URL layout, index naming, and separator conventions
centralized so the document builder, orchestrator, and tests agree on the same
values. Intended for internal use within the guide_index package.

Examples
--------
>>> from guide_index import _constants
>>> "Install" + _constants.TITLE_SEPARATOR + "Getting Started"
'Install » Getting Started'
>>> _constants.DEFAULT_INDEX_PREFIX + "20250101000000000000"
'docs_20250101000000000000'
"""

URL_BASE = "/guide"
CURRENT_DIR = "current"
TITLE_SEPARATOR = " » "

DEFAULT_ALIAS = "docs"
DEFAULT_INDEX_PREFIX = "docs_"
DEFAULT_HOST = "http://localhost:9200"
DEFAULT_STATE_FILE = ".guide-index-state.toml"

HOST_ENV_VAR = "ES_HOST"

# Pages generated by the site tooling that never carry searchable content.
INDEX_PAGE = "index"
WIDGET_PAGE = "sense_widget"
HTML_SUFFIX = ".html"
