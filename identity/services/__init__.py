"""
Outbound integrations used by the auth flows.
"""
