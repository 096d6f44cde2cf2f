"""
User System

Persistence of Account documents.
"""
