"""Line-item categorization.

Maps instruments and breakdown line items to the fixed ``SourceType`` buckets
used by the report pages. Classification runs over an ordered rule table and
the last rule is an unconditional fallback, so ``categorize`` always returns a
bucket and never raises.

Rule order:
  1. line role (interest -> financing, principal/loan -> debt)
  2. balance-sheet instrument kind (pension, realEstate, saving, asset, debt)
  3. keyword match over label + free-text category (see DEFAULT_KEYWORD_MAP)
  4. cash-flow kind (income -> cash, expense -> living)
  5. fallback -> other

The keyword table can be extended from a JSON file, see
``build_categorizer_from_env()``.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping

from ..data_model import SourceType

logger = logging.getLogger(__name__)

# Keyword precedence follows dict order: "주택연금" must land in pension before
# the real-estate keywords see "주택".
DEFAULT_KEYWORD_MAP: Dict[SourceType, tuple[str, ...]] = {
    SourceType.PENSION: ("연금", "퇴직", "irp", "pension", "annuity"),
    SourceType.REAL_ESTATE: ("부동산", "아파트", "자택", "주택", "토지", "건물", "상가", "오피스텔", "real estate", "property"),
    SourceType.MEDICAL: ("의료", "병원", "건강", "치료", "간병", "실손", "medical", "hospital", "health"),
    SourceType.FINANCING: ("이자", "대출", "할부", "interest", "loan", "mortgage"),
    SourceType.SAVING: ("저축", "투자", "예금", "적금", "채권", "주식", "펀드", "etf", "isa", "cma", "청약", "saving", "deposit", "invest"),
    SourceType.LIVING: ("생활", "식비", "주거", "관리비", "월세", "교육", "통신", "교통", "living", "food", "utility", "groceries"),
    SourceType.CASH: ("현금", "급여", "월급", "소득", "근로", "상여", "보너스", "salary", "wage", "income", "cash", "bonus"),
}

ROLE_MAP: Dict[str, SourceType] = {
    "interest": SourceType.FINANCING,
    "principal": SourceType.DEBT,
    "loan": SourceType.DEBT,
}

KIND_MAP: Dict[str, SourceType] = {
    "pension": SourceType.PENSION,
    "realEstate": SourceType.REAL_ESTATE,
    "saving": SourceType.SAVING,
    "asset": SourceType.ASSET,
    "debt": SourceType.DEBT,
}

FLOW_KIND_MAP: Dict[str, SourceType] = {
    "income": SourceType.CASH,
    "expense": SourceType.LIVING,
}


def _normalize(text: Any) -> str:
    """Lowercases and collapses whitespace for matching."""
    return re.sub(r"\s+", " ", str(text if text is not None else "").strip().lower())


@dataclass
class CategorizationResult:
    category: SourceType
    source: str
    matched: str | None = None


class RuleBasedCategorizer:
    """Ordered role/kind/keyword classifier.

    Parameters:
        keyword_map: mapping of SourceType -> keywords; dict order is precedence
        default_category: bucket returned when nothing else matches
    """

    def __init__(
        self,
        keyword_map: Mapping[SourceType, Iterable[str]] | None = None,
        default_category: SourceType = SourceType.OTHER,
    ) -> None:
        self.keyword_map: Dict[SourceType, tuple[str, ...]] = {
            SourceType(k): tuple(_normalize(kw) for kw in v if _normalize(kw))
            for k, v in (keyword_map or DEFAULT_KEYWORD_MAP).items()
        }
        self.default_category = default_category

    def classify(
        self,
        label: Any,
        kind: str | None = None,
        role: str | None = None,
        category: Any = None,
    ) -> CategorizationResult:
        role = _normalize(role) if role is not None else None
        kind = str(kind).strip() if kind is not None else None
        if role and role in ROLE_MAP:
            return CategorizationResult(category=ROLE_MAP[role], source="role", matched=role)

        if kind and kind in KIND_MAP:
            return CategorizationResult(category=KIND_MAP[kind], source="kind", matched=kind)

        text = f"{_normalize(label)} {_normalize(category)}".strip()
        if text:
            for source_type, keywords in self.keyword_map.items():
                for kw in keywords:
                    if kw in text:
                        return CategorizationResult(category=source_type, source="keyword", matched=kw)

        if kind and kind in FLOW_KIND_MAP:
            return CategorizationResult(category=FLOW_KIND_MAP[kind], source="flow-kind", matched=kind)

        return CategorizationResult(category=self.default_category, source="fallback")

    def categorize(
        self,
        label: Any,
        kind: str | None = None,
        role: str | None = None,
        category: Any = None,
    ) -> SourceType:
        return self.classify(label, kind=kind, role=role, category=category).category


def _load_json_mapping(path: str) -> Dict[SourceType, tuple[str, ...]]:
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read category map %s: %s", path, exc)
        return {}

    mapping: Dict[SourceType, tuple[str, ...]] = {}
    for key, keywords in data.items():
        try:
            source_type = SourceType(key)
        except ValueError:
            logger.warning("Unknown source type %r in category map %s", key, path)
            continue
        if isinstance(keywords, str):
            keywords = [keywords]
        mapping[source_type] = tuple(str(kw) for kw in keywords)
    return mapping


def build_categorizer_from_env() -> RuleBasedCategorizer:
    """Creates the default categorizer, extended by an optional JSON keyword map.

    Env vars:
      RETIREPLAN_CATEGORY_MAP=<path.json> -> {"medical": ["약국", ...], ...}
                                             extra keywords, checked after the
                                             built-in ones of the same bucket
    """
    extra = _load_json_mapping(os.getenv("RETIREPLAN_CATEGORY_MAP", ""))
    keyword_map = dict(DEFAULT_KEYWORD_MAP)
    for source_type, keywords in extra.items():
        keyword_map[source_type] = keyword_map.get(source_type, ()) + keywords
    return RuleBasedCategorizer(keyword_map=keyword_map)


_DEFAULT = RuleBasedCategorizer()


def categorize(item: Any, categorizer: RuleBasedCategorizer | None = None) -> SourceType:
    """Categorize an instrument, a CategorizedAmount or a raw dict line item."""
    categorizer = categorizer or _DEFAULT
    if isinstance(item, Mapping):
        return categorizer.categorize(
            item.get("label") or item.get("title"),
            kind=item.get("kind"),
            role=item.get("role"),
            category=item.get("category"),
        )
    label = getattr(item, "label", None) or getattr(item, "title", None)
    return categorizer.categorize(
        label,
        kind=getattr(item, "kind", None) or None,
        role=getattr(item, "role", None) or None,
        category=getattr(item, "category", None),
    )
