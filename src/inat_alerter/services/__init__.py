"""
Shared service utilities.

- http.py     - pre-configured requests session (User-Agent, default timeout)
- sendgrid.py - SendGrid v3 mail-send transport
"""
