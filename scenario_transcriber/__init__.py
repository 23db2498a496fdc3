"""
Scenario transcriber: turns recording-session exports into DOCX transcripts.
"""

__version__ = "0.1.0"
