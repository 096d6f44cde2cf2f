"""
Identity service: credential and session lifecycle for end users.
"""
