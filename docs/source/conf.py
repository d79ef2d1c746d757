import os
import sys

# Put project root on sys.path so autoapi can import the package if needed
sys.path.insert(0, os.path.abspath("../.."))

project = "wscv"
author = "wscv developers"

extensions = [
    "autoapi.extension",
    "sphinx.ext.doctest",
    "sphinx.ext.napoleon",
    "myst_nb",
    "sphinx_copybutton",
]
templates_path = []
exclude_patterns = []

nb_execution_mode = "off"

html_theme = "sphinx_book_theme"
html_theme_options = {
    "path_to_docs": "docs/source",
}

myst_enable_extensions = [
    "deflist",
    "colon_fence",
]

master_doc = "index"

autoapi_type = "python"
autoapi_dirs = ["../../wscv"]
autoapi_options = [
    "members",
    "undoc-members",
    "show-inheritance",
    "show-module-summary",
]

autoapi_ignore = [
    "**/docs/**",
    "**/tests/**",
    "**/.venv/**",
    "**/__pycache__/**",
]

autodoc_typehints = "description"
