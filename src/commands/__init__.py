"""Built-in bot commands.

Every module in this package (or one of its sub-packages) defines a
module-level ``command`` mapping with at least ``name`` and ``execute``.
The sub-package name becomes the command category; ``owner`` commands are
owner-only.
"""
