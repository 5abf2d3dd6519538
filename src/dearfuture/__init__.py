"""
Dear Future - time capsules for your future self.

A capsule holds a message that stays sealed until its unlock date.
Dear Future provides:
- A capsule lifecycle: locked, opened, trashed, restored, purged
- A JSON file store kept in sync with memory on every change
- Automatic eviction of capsules left in the trash for 15 days
- Concurrent sorting of capsule collections
- JSON/CSV import and export

Example usage:
    $ dearfuture create -t "Hello" -m "Remember today" -u "2030-01-01 09:00"
    $ dearfuture list --view locked
    $ dearfuture open 1
"""

__version__ = "0.1.0"
__author__ = "Dear Future Contributors"

__all__ = [
    "__version__",
    "__author__",
]
