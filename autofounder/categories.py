"""
AutoFounder Categories & Themes
===============================
Closed tables: business category keywords, category -> theme, theme -> background assets.
Declaration order of Category is the classifier's tie-break order.
"""

from enum import Enum
from typing import Dict, List, Tuple

from autofounder.models import ThemeConfig


class Category(str, Enum):
    FINTECH = "fintech"
    DEVTOOLS = "devtools"
    CONSUMER = "consumer"
    B2B_SAAS = "b2b_saas"
    HEALTHTECH = "healthtech"
    AI_INFRA = "ai_infra"
    MARKETPLACE = "marketplace"
    EDTECH = "edtech"
    CLIMATE = "climate"
    OTHER = "other"


class ThemeKey(str, Enum):
    INVESTOR = "investor"
    MINIMAL = "minimal"
    BOLD = "bold"
    CLINICAL = "clinical"
    ECO = "eco"
    INFRA = "infra"


FALLBACK_CATEGORY = Category.OTHER
FALLBACK_THEME = ThemeKey.MINIMAL

CATEGORY_KEYWORDS: Dict[Category, List[str]] = {
    Category.FINTECH: [
        "payments", "banking", "ledger", "lending", "neo-bank",
        "billing", "card", "crypto", "remittance",
    ],
    Category.DEVTOOLS: [
        "sdk", "api", "cli", "ci", "cd",
        "developer", "observability", "monitoring", "testing",
    ],
    Category.CONSUMER: ["social", "creator", "marketplace", "mobile", "app", "ecommerce", "lifestyle"],
    Category.B2B_SAAS: ["crm", "workflow", "saas", "enterprise", "billing", "ops", "automation", "erp"],
    Category.HEALTHTECH: ["patient", "clinic", "telehealth", "ehr", "hc", "HIPAA", "medical", "healthcare"],
    Category.AI_INFRA: [
        "inference", "embeddings", "vector db", "vector-db",
        "mlops", "model serving", "gpu", "accelerator",
    ],
    Category.MARKETPLACE: ["buyers", "sellers", "two-sided", "listing", "transactions", "commissions"],
    Category.EDTECH: ["learning", "curriculum", "school", "teacher", "student", "lms", "course"],
    Category.CLIMATE: ["carbon", "emissions", "sustainability", "renewable", "cleantech", "offsets"],
    Category.OTHER: ["other"],
}

CATEGORY_TO_THEME: Dict[Category, ThemeKey] = {
    Category.FINTECH: ThemeKey.INVESTOR,
    Category.DEVTOOLS: ThemeKey.MINIMAL,
    Category.CONSUMER: ThemeKey.BOLD,
    Category.B2B_SAAS: ThemeKey.INVESTOR,
    Category.HEALTHTECH: ThemeKey.CLINICAL,
    Category.AI_INFRA: ThemeKey.INFRA,
    Category.MARKETPLACE: ThemeKey.INVESTOR,
    Category.EDTECH: ThemeKey.MINIMAL,
    Category.CLIMATE: ThemeKey.ECO,
    Category.OTHER: ThemeKey.MINIMAL,
}

# --- Background assets + default text tone per theme (used by the exporter) ---
THEME_ASSETS: Dict[ThemeKey, ThemeConfig] = {
    ThemeKey.INVESTOR: ThemeConfig(
        coverBg="/images/bg-cover-fintech-v1.png",
        contentBg="/images/bg-content-fintech-v1.png",
        defaultText="light",
    ),
    ThemeKey.MINIMAL: ThemeConfig(
        coverBg="/images/bg-cover-devtools-v1.png",
        contentBg="/images/bg-content-devtools-v1.png",
        defaultText="dark",
    ),
    ThemeKey.BOLD: ThemeConfig(
        coverBg="/images/bg-cover-consumer-v1.png",
        contentBg="/images/bg-content-consumer-v1.png",
        defaultText="light",
    ),
    ThemeKey.CLINICAL: ThemeConfig(
        coverBg="/images/bg-cover-healthtech-v1.png",
        contentBg="/images/bg-content-healthtech-v1.png",
        defaultText="dark",
    ),
    ThemeKey.ECO: ThemeConfig(
        coverBg="/images/bg-cover-climate-v1.png",
        contentBg="/images/bg-content-climate-v1.png",
        defaultText="dark",
    ),
    ThemeKey.INFRA: ThemeConfig(
        coverBg="/images/bg-cover-ai-infra-v1.png",
        contentBg="/images/bg-content-ai-infra-v1.png",
        defaultText="light",
    ),
}


def resolve_theme(category: Category) -> Tuple[ThemeKey, ThemeConfig]:
    """Total mapping: every category has exactly one theme, every theme one config."""
    theme = CATEGORY_TO_THEME.get(Category(category), FALLBACK_THEME)
    return theme, THEME_ASSETS[theme]
