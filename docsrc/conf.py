# docsrc/conf.py
import os
import sys

# -- Path setup --------------------------------------------------------------
# Add the 'src' directory of the library to sys.path so Sphinx can find it.
sys.path.insert(0, os.path.abspath('../src'))

# -- Project information -----------------------------------------------------
project = 'mutable_collection'
author = 'mutable_collection contributors'

# Get the version dynamically from _version.py
try:
    from mutable_collection._version import __version__
    version = __version__
    release = __version__
except ImportError:
    print("Warning: Could not import mutable_collection._version to determine version.")
    version = '0.0.0'
    release = '0.0.0'

# -- General configuration ---------------------------------------------------
extensions = [
    'sphinx.ext.autodoc',      # Pull documentation from docstrings
    'sphinx.ext.napoleon',     # Google style docstrings
    'sphinx.ext.intersphinx',  # Link to the Python docs
    'sphinx.ext.viewcode',     # Add links to source code from documentation
]

autodoc_member_order = 'bysource'

napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_include_init_with_doc = True
napoleon_include_private_with_doc = False
napoleon_include_special_with_doc = True

intersphinx_mapping = {'python': ('https://docs.python.org/3', None)}

templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

# -- Options for HTML output -------------------------------------------------
html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']
