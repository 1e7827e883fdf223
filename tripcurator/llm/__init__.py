"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Build the rerank prompt from candidates and the weather brief.
- Map the model's scored picks back onto the original candidates.
- Graceful fallback when the LLM is unavailable or returns invalid output.
"""
