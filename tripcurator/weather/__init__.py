"""
Weather snapshot layer.

Responsibilities:
- Fetch current conditions for a coordinate from OpenWeather.
- Reduce them to the WeatherBrief the rerank prompt consumes.
"""
