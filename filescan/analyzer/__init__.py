"""filescan analyzer package.

  - definitions.py — compiled banned-phrase and PII rule sets (google-re2)
  - analytics.py   — pure analytical functions and the decision policy
  - streaming.py   — ContentAnalyzer protocol and StreamingAnalyzer
  - loader.py      — AnalyzerLoader, the factory hosts use to obtain analyzers
"""
