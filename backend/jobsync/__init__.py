"""
Job application tracker backed by Gmail.

- Exchanges a stored Google refresh token for an access token
- Fetches recent job-related message metadata from Gmail
- Classifies each message (employer, role, status, applied date)
- Reconciles the results into per-user application records
"""
