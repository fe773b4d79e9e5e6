"""
SpotiCue Test Suite
"""
