"""
qualifiers_order/__main__.py
============================

Entry point for ``python -m qualifiers_order`` and the ``qualifiers-order``
console script.  See :mod:`qualifiers_order.main` for the options.
"""

from __future__ import annotations

import sys

from qualifiers_order.main import main

__all__ = ["main"]

if __name__ == "__main__":
    sys.exit(main())
