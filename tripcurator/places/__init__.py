"""
Place domain layer.

Responsibilities:
- Define the canonical Candidate record and the closed Category set.
- Normalize heterogeneous provider records into Candidates.
- Hold the weather brief and AI rerank reply shapes shared by the pipeline.
"""
