"""
Email service configuration constants.

These are fixed values that don't change per environment.
Environment-specific values (API keys, URLs) are loaded from settings.
"""

# Resend API endpoint
RESEND_API_URL = "https://api.resend.com/emails"

# Timeout for the Resend HTTP call, seconds
RESEND_TIMEOUT_SECONDS = 10.0

# Default values (can be overridden by settings)
EMAIL_DEFAULTS = {
    "mode": "console",
    "from_name": "Identity Service",
    "team_name": "The Identity Team",
}

# Subjects of the account-lifecycle emails
EMAIL_SUBJECTS = {
    "verification": "Verify your email address",
    "password_reset": "Reset your password",
    "password_reset_success": "Your password has been reset",
}
