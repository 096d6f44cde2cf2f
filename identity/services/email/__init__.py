"""
Email services.
"""

from identity.services.email.email_service import EmailService

__all__ = ["EmailService"]
