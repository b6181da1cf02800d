"""filescan models package.

Defines the shared data contracts produced by the analyzer and consumed by hosts:

  - analysis.py — Decision, AnalyzerState, AnalysisStats, AnalysisResult

These models are the single source of truth for what a finalize call returns.
"""
