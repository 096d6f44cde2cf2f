"""
Auth System

Handles credential verification, stateless access/refresh tokens, and the
refresh-token session registry embedded in User documents.
"""
