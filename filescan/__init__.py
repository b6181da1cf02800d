"""filescan — streaming content analysis with an allow/block verdict.

Text files are fed to a ``StreamingAnalyzer`` chunk by chunk; ``finalize()``
returns word frequencies, banned-phrase and PII findings, Shannon entropy, a
risk score, and the decision. Everything runs in-process with no I/O.
"""

__version__ = "0.1.0"
