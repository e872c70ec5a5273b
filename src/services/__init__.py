"""Scoring pipeline services used by handlers.

Services are imported lazily by handlers so a cold start does not open a
database connection or create a Bedrock client before the first request.
"""

# Do NOT import services here - use lazy loading in handlers instead
