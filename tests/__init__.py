"""
Campaign Detector Tests
=======================
Run all tests: python3 -m pytest tests/ -v
"""
