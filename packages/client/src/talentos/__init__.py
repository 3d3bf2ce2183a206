"""TalentOS API client.

Authenticated access to the TalentOS metrics backend: bearer credentials on
every call, single-flight token refresh across concurrent requests, and
login/logout session handling.
"""

__version__ = "0.1.0"
