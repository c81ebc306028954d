"""
AI-assisted sourcing.

Keeps a small queue of resale opportunities (clothes and shoes worth buying
locally for resale). Opportunities come from the OpenAI Responses API when a
key is configured and from a fixed seed list otherwise. Accepting one turns
it into a draft product in the same transaction that removes it from the queue.
"""

import json
import logging
import math
import uuid
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.config import Settings
from sawtooth.core.enums import AI_DRAFT_TAG, OpportunityCategory, ProductCategory, ProductStatus
from sawtooth.core.exceptions import BaseServiceError, OpportunityNotFoundError, StoreFailure, ValidationError
from sawtooth.core.utils import slugify, utc_now
from sawtooth.models.opportunity import AiOpportunity
from sawtooth.models.product import Product
from sawtooth.services.activity_logger import ActivityLogger
from sawtooth.services.product_service import ProductService

logger = logging.getLogger(__name__)

OPENAI_RESPONSES_URL = "https://api.openai.com/v1/responses"
DEFAULT_MAX_BUY_CENTS = 1800
MIN_MARKUP = 1.6
MIN_MARGIN_PCT = 40
MAX_LIST_ITEMS = 8
QUEUE_SIZE = 3
MIN_BATCH = 5

SEED_OPPORTUNITIES = [
    {
        "category": "shoes",
        "title": "Nike Air Max 90 (used)",
        "max_buy_price": 32,
        "suggested_price": 89,
        "search_keywords": ["nike air max 90", "sneakers men 10"],
        "condition_checklist": ["check heel wear", "clean midsoles"],
        "notes": "High demand sneaker in Twin Falls listings.",
    },
    {
        "category": "clothes",
        "title": "Levi's 501 jeans vintage wash",
        "max_buy_price": 18,
        "suggested_price": 52,
        "search_keywords": ["levis 501", "vintage denim"],
        "condition_checklist": ["measure inseam", "check zipper/button"],
        "notes": "Evergreen denim sell-through.",
    },
    {
        "category": "shoes",
        "title": "Dr Martens 1460 boots",
        "max_buy_price": 45,
        "suggested_price": 115,
        "search_keywords": ["doc martens 1460", "combat boots"],
        "condition_checklist": ["inspect sole split", "condition leather"],
        "notes": "Strong margin with authentic pairs.",
    },
    {
        "category": "clothes",
        "title": "Patagonia fleece quarter zip",
        "max_buy_price": 22,
        "suggested_price": 68,
        "search_keywords": ["patagonia fleece", "quarter zip"],
        "condition_checklist": ["check pilling", "test zipper"],
        "notes": "Outdoor brand sells quickly.",
    },
]


def _to_cents(value: Any, fallback: int) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number) or number < 0:
        return fallback
    return int(round(number * 100))


def _dollars(raw: Dict[str, Any], dollars_key: str, cents_key: str) -> Any:
    if raw.get(dollars_key) is not None:
        return raw[dollars_key]
    if raw.get(cents_key) is not None:
        try:
            return float(raw[cents_key]) / 100
        except (TypeError, ValueError):
            return None
    return None


def _clean_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    cleaned = [str(item).strip() for item in value if item is not None]
    return [item for item in cleaned if item][:MAX_LIST_ITEMS]


def search_query(raw: Dict[str, Any]) -> str:
    """Title plus keywords, at most six terms."""
    keywords = _clean_list(raw.get("search_keywords"))
    terms = [str(term or "").strip() for term in [raw.get("title"), *keywords]]
    base = " ".join([term for term in terms if term][:6])
    return base or str(raw.get("title") or "").strip() or "thrift finds"


def build_buy_links(raw: Dict[str, Any]) -> List[Dict[str, str]]:
    q = quote(search_query(raw), safe="")
    return [
        {"label": "eBay", "url": f"https://www.ebay.com/sch/i.html?_nkw={q}"},
        {"label": "Poshmark", "url": f"https://poshmark.com/search?query={q}"},
        {"label": "Depop", "url": f"https://www.depop.com/search/?q={q}"},
        {"label": "Google Shopping", "url": f"https://www.google.com/search?tbm=shop&q={q}"},
        {"label": "Facebook Marketplace", "url": f"https://www.facebook.com/marketplace/search/?query={q}"},
    ]


def build_local_pickup(raw: Dict[str, Any]) -> List[Dict[str, str]]:
    q = quote(f"{search_query(raw)} Twin Falls Idaho", safe="")
    return [
        {"place": "Facebook Marketplace (Twin Falls)", "url": f"https://www.facebook.com/marketplace/twin-falls/search/?query={q}"},
        {"place": "OfferUp (Twin Falls)", "url": f"https://offerup.com/search/?q={q}"},
        {"place": "Google Maps: thrift stores Twin Falls", "url": "https://www.google.com/maps/search/thrift+stores+in+Twin+Falls+Idaho"},
        {"place": "Google Maps: consignment Twin Falls", "url": "https://www.google.com/maps/search/consignment+stores+in+Twin+Falls+Idaho"},
    ]


def normalize_opportunity(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Coerce one generated (or seed) opportunity into row values.

    Pricing rules: max buy defaults to $18; the suggested price is at least
    1.6x the max buy; margin is reported as at least 40%.
    """
    raw = raw if isinstance(raw, dict) else {}

    max_buy = _to_cents(_dollars(raw, "max_buy_price", "max_buy_price_cents"), DEFAULT_MAX_BUY_CENTS)
    min_suggested = math.ceil(max_buy * MIN_MARKUP)
    suggested = max(_to_cents(_dollars(raw, "suggested_price", "suggested_price_cents"), min_suggested), min_suggested)
    margin = max(MIN_MARGIN_PCT, round((suggested - max_buy) / max(suggested, 1) * 100))

    category = (
        OpportunityCategory.SHOES.value
        if "shoe" in str(raw.get("category") or "").lower()
        else OpportunityCategory.CLOTHES.value
    )
    fallback_title = f"{raw.get('brand') or ''} {raw.get('item_type') or 'item'}"
    title = str(raw.get("title") or fallback_title).strip() or "Resale opportunity"

    return {
        "opp_id": f"opp_{uuid.uuid4().hex[:12]}",
        "category": category,
        "title": title,
        "max_buy_price_cents": max_buy,
        "suggested_price_cents": suggested,
        "expected_margin_pct": margin,
        "search_keywords": _clean_list(raw.get("search_keywords")),
        "buy_links": build_buy_links(raw),
        "local_pickup": build_local_pickup(raw),
        "condition_checklist": _clean_list(raw.get("condition_checklist") or raw.get("checklist")),
        "notes": str(raw.get("notes") or raw.get("source_notes") or "").strip(),
    }


def fallback_opportunities(count: int) -> List[Dict[str, Any]]:
    return [normalize_opportunity(SEED_OPPORTUNITIES[i % len(SEED_OPPORTUNITIES)]) for i in range(count)]


def extract_output_text(data: Dict[str, Any]) -> str:
    """Responses API text: ``output_text`` when present, else the message content parts."""
    if isinstance(data.get("output_text"), str):
        return data["output_text"]
    parts = []
    for item in data.get("output") or []:
        for content in (item or {}).get("content") or []:
            if isinstance(content, dict) and isinstance(content.get("text"), str):
                parts.append(content["text"])
    return "".join(parts)


class OpportunityGenerator:
    """Asks OpenAI for opportunities, falling back to the seed list on any failure."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client

    def build_prompt(self, count: int) -> str:
        return (
            f"Generate {count} resale opportunities for Twin Falls, Idaho, CLOTHES + SHOES only. "
            "Return strict JSON array objects with keys: category,title,max_buy_price,suggested_price,"
            "expected_margin_pct,search_keywords,condition_checklist,notes. "
            "Enforce expected_margin_pct >= 40 and suggested_price >= max_buy_price * 1.6."
        )

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.OPENAI_API_KEY}",
        }
        if self.client is not None:
            return await self.client.post(OPENAI_RESPONSES_URL, json=payload, headers=headers)
        async with httpx.AsyncClient(timeout=self.settings.OPENAI_TIMEOUT_SECONDS) as client:
            return await client.post(OPENAI_RESPONSES_URL, json=payload, headers=headers)

    async def generate(self, count: int) -> List[Dict[str, Any]]:
        if not self.settings.OPENAI_API_KEY:
            return fallback_opportunities(count)

        payload = {
            "model": self.settings.OPENAI_MODEL,
            "input": self.build_prompt(count),
            "max_output_tokens": 1200,
        }
        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.warning("OpenAI request failed, using seed opportunities: %s", e)
            return fallback_opportunities(count)

        if response.status_code != 200:
            logger.warning("OpenAI returned %s, using seed opportunities", response.status_code)
            return fallback_opportunities(count)

        try:
            parsed = json.loads(extract_output_text(response.json()) or "[]")
        except ValueError:
            logger.warning("OpenAI returned unparseable opportunities, using seed list")
            return fallback_opportunities(count)

        if not isinstance(parsed, list) or not parsed:
            return fallback_opportunities(count)
        return [normalize_opportunity(raw) for raw in parsed[:count]]


class OpportunityService:

    def __init__(
        self,
        db: AsyncSession,
        generator: OpportunityGenerator,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self.db = db
        self.generator = generator
        self.activity = activity_logger or ActivityLogger(db)

    async def _oldest(self, limit: Optional[int] = None) -> List[AiOpportunity]:
        query = select(AiOpportunity).order_by(AiOpportunity.created_at, AiOpportunity.opp_id)
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def ensure_opportunities(self, min_count: int = QUEUE_SIZE) -> List[AiOpportunity]:
        """Top up the queue when it is short and return the oldest three."""
        existing = await self._oldest()
        if len(existing) < min_count:
            generated = await self.generator.generate(max(MIN_BATCH, min_count - len(existing)))
            now = utc_now()
            try:
                for values in generated:
                    self.db.add(AiOpportunity(created_at=now, **values))
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error("Failed to store generated opportunities: %s", e)
                raise StoreFailure("Failed to store opportunities") from e
            logger.info("Queued %d new sourcing opportunities", len(generated))

        return await self._oldest(QUEUE_SIZE)

    async def accept(self, opp_id: str) -> Product:
        """
        Turn an opportunity into a draft product (inventory 1, tagged ai-draft)
        and remove it from the queue, in one transaction.
        """
        opp_id = str(opp_id or "").strip()
        if not opp_id:
            raise ValidationError("Missing opp_id", field="opp_id")

        try:
            result = await self.db.execute(
                select(AiOpportunity).where(AiOpportunity.opp_id == opp_id).with_for_update()
            )
            opp = result.scalar_one_or_none()
            if opp is None:
                raise OpportunityNotFoundError(opp_id)

            await self.db.execute(delete(AiOpportunity).where(AiOpportunity.opp_id == opp_id))

            product_id = await ProductService(self.db).unique_product_id(slugify(opp.title))
            keywords = list(opp.search_keywords or [])
            checklist = list(opp.condition_checklist or [])
            now = utc_now()
            product = Product(
                id=product_id,
                status=ProductStatus.DRAFT,
                title=opp.title,
                description=(
                    f"AI draft listing for {opp.title}. Keywords: {', '.join(keywords)}. "
                    f"Condition checklist: {'; '.join(checklist)}."
                ),
                category=(
                    ProductCategory.SHOES.value
                    if opp.category == OpportunityCategory.SHOES.value
                    else ProductCategory.CLOTHES.value
                ),
                clothing_subcategory="",
                price_cents=opp.suggested_price_cents,
                currency="usd",
                photos=[],
                inventory=1,
                tags=[AI_DRAFT_TAG],
                source_notes=opp.notes or "",
                buy_price_max_cents=opp.max_buy_price_cents,
                search_keywords=keywords,
                created_at=now,
                updated_at=now,
            )
            self.db.add(product)
            self.activity.log_activity(
                "accept_opportunity", "product", product_id, platform="ai", details={"opp_id": opp_id}
            )
            await self.db.commit()

        except BaseServiceError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to accept opportunity %s: %s", opp_id, e)
            raise StoreFailure("Failed to accept opportunity") from e

        logger.info("Accepted opportunity %s as draft product %s", opp_id, product_id)
        return product

    async def decline(self, opp_id: str) -> List[AiOpportunity]:
        opp_id = str(opp_id or "").strip()
        if not opp_id:
            raise ValidationError("Missing opp_id", field="opp_id")

        try:
            await self.db.execute(delete(AiOpportunity).where(AiOpportunity.opp_id == opp_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure("Failed to decline opportunity") from e

        return await self.ensure_opportunities(QUEUE_SIZE)
