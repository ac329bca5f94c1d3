"""
Tempo Guide backend.

Strava connection and token lifecycle, activity import, and
training-plan parsing for the running coach web app.
"""

__version__ = "0.1.0"
