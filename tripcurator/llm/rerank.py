from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Sequence

from pydantic import ValidationError

from ..errors import MalformedResponse
from ..places.models import INDOOR_HINTS, AiRerankReply, Candidate, WeatherBrief
from ..protocols import ChatCompleter
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a local trip curator. "
    "Given the current weather and a list of candidate places, pick and score "
    "the places that best fit the requested categories and the weather.\n\n"
    "Rules:\n"
    "- Use ONLY places from the provided list, referenced by their exact id. "
    "Never invent new places.\n"
    "- If it is raining, snowing or very windy, or the feels-like temperature "
    "is at or below 0C or at or above 32C, favour indoor places.\n"
    "- Give every pick a score between 0 and 1 and a one-sentence reason.\n\n"
    "Return ONLY valid JSON in this exact format:\n"
    '{"policy": "<one-line weather policy>", '
    '"picked": [{"id": "<place id>", "score": 0.0, "reason": "<one sentence>", '
    '"indoor": true}]}'
)


def _compact(candidates: Sequence[Candidate]) -> list[dict[str, Any]]:
    return [
        {
            "id": c.id,
            "name": c.name,
            "addr": c.address or "",
            "lat": c.lat,
            "lng": c.lng,
            "tags": c.category.value,
            "indoor": INDOOR_HINTS.get(c.category),
        }
        for c in candidates
    ]


def build_messages(
    category_label: str,
    weather: WeatherBrief | None,
    candidates: Sequence[Candidate],
    max_picks: int | None = None,
) -> list[dict[str, str]]:
    lines = [f"## Categories\n{category_label or 'any'}"]

    lines.append("\n## Current Weather")
    if weather is not None:
        brief = weather.model_dump(exclude_none=True)
        brief["adverse"] = weather.is_adverse
        lines.append(json.dumps(brief, ensure_ascii=False))
    else:
        lines.append("unknown")

    lines.append("\n## Candidate Places")
    lines.append(json.dumps(_compact(candidates), ensure_ascii=False))

    if max_picks:
        lines.append(f"\nPick at most {max_picks} places.")
    lines.append("Answer with the JSON schema only.")

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(lines)},
    ]


def parse_reply(raw: str) -> AiRerankReply:
    """Raw model text -> AiRerankReply. Raises MalformedResponse."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedResponse("reply is not JSON") from exc
    if not isinstance(data, dict):
        raise MalformedResponse("reply is not a JSON object")
    try:
        reply = AiRerankReply.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponse(f"reply does not match schema: {exc}") from exc
    if not reply.picked:
        raise MalformedResponse("reply picked nothing")
    return reply


def apply_reply(
    reply: AiRerankReply,
    candidates: Sequence[Candidate],
    max_picks: int | None = None,
) -> tuple[list[Candidate], dict[str, str]]:
    """
    Map scored picks back onto the original candidates.

    Picks are ordered by score (descending), ties by input position. Unknown
    and repeated ids are dropped. Candidates the model did not pick are left
    out. Each returned candidate carries its ``ai_score``.
    """
    position: dict[str, int] = {}
    for i, c in enumerate(candidates):
        position.setdefault(c.id, i)

    known = [p for p in reply.picked if p.id in position]
    dropped = len(reply.picked) - len(known)
    if dropped:
        logger.info("rerank: ignored %d pick(s) with unknown ids", dropped)
    known.sort(key=lambda p: (-p.score, position[p.id]))

    ordered: list[Candidate] = []
    reasons: dict[str, str] = {}
    seen: set[str] = set()
    for pick in known:
        if pick.id in seen:
            continue
        seen.add(pick.id)
        original = candidates[position[pick.id]]
        ordered.append(original.model_copy(update={"ai_score": pick.score}))
        if pick.reason.strip():
            reasons[pick.id] = pick.reason.strip()
        if max_picks and len(ordered) >= max_picks:
            break

    if not ordered:
        raise MalformedResponse("no picked id matches a candidate")
    return ordered, reasons


async def rerank(
    client: ChatCompleter | None,
    category_label: str,
    weather: WeatherBrief | None,
    candidates: Sequence[Candidate],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
    timeout: float | None = None,
) -> tuple[list[Candidate], dict[str, str]]:
    """
    Ask the AI to pick and order ``candidates``.

    Returns ``(ordered, reasons_by_id)``. On any failure (disabled client,
    transport error, timeout, malformed or empty reply) returns the input
    list unchanged with no reasons. Only cancellation propagates.
    """
    if not candidates:
        return list(candidates), {}
    if client is None or not config.enabled:
        logger.debug("rerank skipped: AI scoring disabled")
        return list(candidates), {}

    messages = build_messages(category_label, weather, candidates, config.max_picks)
    try:
        raw = await asyncio.wait_for(
            client.complete(messages),
            timeout=timeout if timeout is not None else config.timeout,
        )
        ordered, reasons = apply_reply(parse_reply(raw), candidates, config.max_picks)
    except Exception:
        logger.warning("AI rerank failed, keeping original order", exc_info=True)
        return list(candidates), {}

    logger.debug(
        "rerank order: in=%s out=%s",
        [c.id for c in candidates],
        [c.id for c in ordered],
    )
    return ordered, reasons
