#!/usr/bin/env python3
"""
Executable wrapper for the document_detection module.

Alternative to: python -m document_detection
Usage:          python detect_document.py detect card.jpg
"""

from document_detection.__main__ import main

if __name__ == '__main__':
    main()
