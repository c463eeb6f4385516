"""
models/ - Domain Models
=======================
Plain frozen dataclasses for configuration layers and post-commands.
No I/O happens here.
"""
