"""
Pitwall Intelligence

Query orchestration engine for Formula 1 questions: feature extraction,
capability routing, multi-capability execution, conversation memory and
human confirmation.
"""

__version__ = "0.1.0"
