"""filescan host boundary.

  - limits.py   — size policy: pre-checks, chunking, BoundedAnalyzer
  - records.py  — snake_case / camelCase dict records for results
  - sessions.py — SessionManager (one analyzer per file, per-session locking)
"""
