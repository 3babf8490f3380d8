"""chronogrid.tools package

Developer utilities run as `python -m chronogrid.tools.<name>`.

Keep this package's __init__ free of eager imports to avoid side-effects at
import time.
"""

__all__: list[str] = []
