"""
Recommendation engine.

Responsibilities:
- Score candidates from AI score, rating and distance.
- Rebalance the final order so every selected category is represented.
- Run the full search -> weather -> AI rerank -> rebalance pipeline.
"""
