"""
Pawn ability generation for the shop.

Providers are asynchronous and fallible. The game only talks to them through
``load_shop_offers``, which turns any provider failure into an empty shop.
"""
from __future__ import annotations

import asyncio
import json
import logging
import random
import re
import uuid
from typing import Iterable, List, Optional, Protocol, Sequence

import openai
from openai import AsyncOpenAI

from .config import SETTINGS, Settings
from .errors import AbilityGenerationError
from .powers import PawnPower

log = logging.getLogger("gambit.abilities")

SYSTEM = (
    "You design special abilities for pawns in a roguelike chess game. "
    "Answer with JSON only."
)

MAX_COST = 50


class AbilityProvider(Protocol):
    async def generate(self, count: int) -> List[PawnPower]: ...


class StaticAbilityProvider:
    """Deterministic provider serving powers from a fixed catalog, in order."""

    def __init__(self, catalog: Iterable[PawnPower]) -> None:
        self.catalog: List[PawnPower] = list(catalog)

    async def generate(self, count: int) -> List[PawnPower]:
        return self.catalog[: max(0, count)]


class OpenAIAbilityProvider:
    """Asks an OpenAI-compatible chat endpoint for new pawn powers.

    Without an injected client, each ``generate`` call opens its own
    ``AsyncOpenAI`` client and closes it before returning, so the connection
    pool never outlives the event loop it was created on.
    """

    def __init__(self, settings: Settings = SETTINGS, client: Optional[AsyncOpenAI] = None) -> None:
        self.settings = settings
        self._client = client

    def _new_client(self) -> AsyncOpenAI:
        if not self.settings.llm_api_key:
            raise AbilityGenerationError("No API key configured for ability generation")
        return AsyncOpenAI(
            api_key=self.settings.llm_api_key,
            base_url=self.settings.llm_base_url or None,
        )

    def build_messages(self, count: int) -> List[dict]:
        user = (
            f"Invent {count} unique pawn abilities for a chess shop. "
            'Respond with an object {"abilities": [...]} where every item has '
            '"name" (short title), "description" (one sentence) and "cost" '
            f"(integer gold price between 5 and {MAX_COST})."
        )
        return [
            {"role": "system", "content": SYSTEM},
            {"role": "user", "content": user},
        ]

    async def generate(self, count: int) -> List[PawnPower]:
        if count <= 0:
            return []
        if self._client is not None:
            return await self._request(self._client, count)
        async with self._new_client() as client:
            return await self._request(client, count)

    async def _request(self, client: AsyncOpenAI, count: int) -> List[PawnPower]:
        retries = self.settings.llm_retries
        delay = 0.5
        for attempt in range(retries + 1):
            try:
                rsp = await client.chat.completions.create(
                    model=self.settings.llm_model,
                    messages=self.build_messages(count),
                    response_format={"type": "json_object"},
                    timeout=self.settings.llm_timeout_s,
                )
                content = rsp.choices[0].message.content if rsp.choices else None
                return parse_powers(content or "", count)
            except (openai.OpenAIError, AbilityGenerationError) as exc:
                if attempt >= retries:
                    raise AbilityGenerationError(
                        f"Ability generation failed after {attempt + 1} attempts: {exc}"
                    ) from exc
                sleep_s = delay * (2 ** attempt) * (0.8 + 0.4 * random.random())
                log.warning("Ability generation attempt %d failed: %s", attempt + 1, exc)
                await asyncio.sleep(min(sleep_s, 10.0))
        return []


def _slug(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "power"


def parse_powers(text: str, count: int) -> List[PawnPower]:
    """Turn a JSON reply into at most ``count`` PawnPower records with fresh ids."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AbilityGenerationError(f"Reply is not JSON: {exc}") from exc

    items = data.get("abilities") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise AbilityGenerationError("Reply has no ability list")

    powers: List[PawnPower] = []
    for item in items[:count]:
        if not isinstance(item, dict):
            raise AbilityGenerationError(f"Malformed ability entry: {item!r}")
        name = str(item.get("name") or "").strip()
        description = str(item.get("description") or "").strip()
        if not name or not description:
            raise AbilityGenerationError(f"Ability entry missing name or description: {item!r}")
        try:
            cost = int(item.get("cost", 0))
        except (TypeError, ValueError) as exc:
            raise AbilityGenerationError(f"Bad cost in ability entry: {item!r}") from exc
        powers.append(
            PawnPower(
                id=f"{_slug(name)}-{uuid.uuid4().hex[:8]}",
                name=name,
                description=description,
                cost=max(0, min(cost, MAX_COST)),
            )
        )
    return powers


async def load_shop_offers(provider: AbilityProvider, count: int) -> Sequence[PawnPower]:
    """Fetch shop wares; any provider failure yields an empty shop."""
    try:
        return list(await provider.generate(count))
    except Exception:
        log.exception("Failed to fetch pawn abilities")
        return []
