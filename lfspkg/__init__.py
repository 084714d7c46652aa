# lfspkg/__init__.py
"""
lfspkg - minimal source-based package build/install tool.

Recipes (key=[value] text files) describe where a source lives, its md5sum,
an optional patch and the shell hooks used to build and install it.
"""

__version__ = "1.0.0"
