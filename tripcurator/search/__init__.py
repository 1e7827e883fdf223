"""
Candidate acquisition layer.

Responsibilities:
- Query the Kakao Local API per category around a center point.
- Geocode free-text regions to coordinates.
- Fan out category searches concurrently and merge them deterministically.
"""
