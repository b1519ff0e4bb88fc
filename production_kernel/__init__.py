"""
Production Kernel

Bookkeeping core for exam/print production tracking:
- Per-lot quantity and percentage-share consistency for catches
- Series expansion for booklet projects
- Cross-lot catch transfer with atomic recomputation
- Project-scoped process predecessor resolution
"""

__version__ = "0.1.0"
