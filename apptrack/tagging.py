"""Tag catalogue and keyword-based tag suggestions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from apptrack.models import TAG_CATEGORIES, Application, Tag


def _tags(category: str, *entries: tuple[str, str, str]) -> list[Tag]:
    return [Tag(id=i, name=n, category=category, color=c) for i, n, c in entries]


TAG_CATALOGUE: dict[str, list[Tag]] = {
    "industry": _tags(
        "industry",
        ("tech", "Technology", "#3b82f6"),
        ("finance", "Finance", "#10b981"),
        ("healthcare", "Healthcare", "#f59e0b"),
        ("education", "Education", "#8b5cf6"),
        ("retail", "Retail", "#ef4444"),
        ("consulting", "Consulting", "#06b6d4"),
        ("government", "Government", "#84cc16"),
        ("nonprofit", "Non-Profit", "#f97316"),
    ),
    "role-type": _tags(
        "role-type",
        ("frontend", "Frontend", "#3b82f6"),
        ("backend", "Backend", "#10b981"),
        ("fullstack", "Full-Stack", "#f59e0b"),
        ("devops", "DevOps", "#8b5cf6"),
        ("data", "Data Science", "#ef4444"),
        ("mobile", "Mobile", "#06b6d4"),
        ("qa", "QA/Testing", "#84cc16"),
        ("product", "Product", "#f97316"),
    ),
    "company-size": _tags(
        "company-size",
        ("startup", "Startup", "#3b82f6"),
        ("small", "Small (1-50)", "#10b981"),
        ("medium", "Medium (51-500)", "#f59e0b"),
        ("large", "Large (500+)", "#8b5cf6"),
        ("enterprise", "Enterprise", "#ef4444"),
    ),
    "location": _tags(
        "location",
        ("remote", "Remote", "#3b82f6"),
        ("hybrid", "Hybrid", "#10b981"),
        ("onsite", "On-site", "#f59e0b"),
        ("international", "International", "#8b5cf6"),
    ),
    "seniority": _tags(
        "seniority",
        ("junior", "Junior", "#3b82f6"),
        ("mid", "Mid-Level", "#10b981"),
        ("senior", "Senior", "#f59e0b"),
        ("lead", "Lead/Principal", "#8b5cf6"),
        ("executive", "Executive", "#ef4444"),
    ),
    "remote-work": _tags(
        "remote-work",
        ("remote-friendly", "Remote Friendly", "#3b82f6"),
        ("remote-first", "Remote First", "#10b981"),
        ("office-required", "Office Required", "#f59e0b"),
    ),
}

_BY_ID: dict[str, Tag] = {t.id: t for tags in TAG_CATALOGUE.values() for t in tags}

INDUSTRY_KEYWORDS: dict[str, list[str]] = {
    "tech": ["google", "microsoft", "amazon", "apple", "facebook", "meta", "netflix", "uber",
             "airbnb", "spotify", "slack", "zoom", "stripe", "shopify", "twilio", "datadog",
             "snowflake", "mongodb", "elastic"],
    "finance": ["jpmorgan", "goldman", "morgan stanley", "blackrock", "fidelity", "vanguard",
                "wells fargo", "bank of america", "citigroup", "paypal", "coinbase", "robinhood"],
    "healthcare": ["unitedhealth", "anthem", "humana", "cvs", "walgreens", "pfizer", "merck",
                   "abbvie", "roche", "novartis", "astrazeneca", "gilead"],
    "education": ["coursera", "udacity", "udemy", "edx", "khan academy", "duolingo", "chegg", "pearson"],
    "retail": ["walmart", "target", "costco", "home depot", "lowes", "macy", "nordstrom", "best buy"],
    "consulting": ["mckinsey", "bain", "bcg", "deloitte", "kpmg", "pwc", "accenture", "capgemini",
                   "infosys", "wipro"],
}

ROLE_KEYWORDS: dict[str, list[str]] = {
    "frontend": ["frontend", "front-end", "react", "angular", "vue", "javascript", "typescript", "css"],
    "backend": ["backend", "back-end", "server", "api", "node", "python", "java", "golang",
                "ruby", "php", "django", "flask", "spring"],
    "fullstack": ["fullstack", "full-stack", "full stack"],
    "devops": ["devops", "sre", "infrastructure", "aws", "azure", "gcp", "docker", "kubernetes",
               "terraform"],
    "data": ["data scientist", "data engineer", "machine learning", "analytics", "tableau", "power bi"],
    "mobile": ["ios", "android", "mobile", "react native", "flutter", "swift", "kotlin"],
    "qa": ["quality assurance", "testing", "selenium", "cypress"],
    "product": ["product manager", "product owner"],
}

SENIORITY_KEYWORDS: dict[str, list[str]] = {
    "junior": ["junior", "entry level", "graduate", "new grad"],
    "mid": ["mid-level", "intermediate"],
    "senior": ["senior", "experienced"],
    "lead": ["lead", "principal", "staff", "architect"],
    "executive": ["vice president", "director", "chief", "head of", "cto", "ceo"],
}

MAX_SUGGESTIONS = 5


@dataclass(frozen=True)
class TagSuggestion:
    tag: Tag
    confidence: float
    reason: str


def all_tags() -> dict[str, list[Tag]]:
    return {category: list(tags) for category, tags in TAG_CATALOGUE.items()}


def tags_for(category: str) -> list[Tag]:
    return list(TAG_CATALOGUE.get(category, []))


def get_tag(tag_id: str) -> Tag | None:
    return _BY_ID.get(tag_id)


def validate_tags(tags: Iterable[Tag]) -> bool:
    """True when every tag exists in the catalogue under its own category."""
    for tag in tags:
        known = _BY_ID.get(tag.id)
        if known is None or tag.category not in TAG_CATEGORIES or known.category != tag.category:
            return False
    return True


def _keyword_suggestions(
    text: str,
    table: dict[str, list[str]],
    base: float,
    step: float,
    cap: float,
    reason: str,
) -> list[TagSuggestion]:
    out: list[TagSuggestion] = []
    for tag_id, keywords in table.items():
        hits = [k for k in keywords if k in text]
        tag = _BY_ID.get(tag_id)
        if hits and tag is not None:
            out.append(TagSuggestion(tag, round(min(base + step * len(hits), cap), 2), reason.format(tag_id)))
    return out


def _company_size_suggestions(company: str) -> list[TagSuggestion]:
    name = company.lower()
    out: list[TagSuggestion] = []
    if any(s in name for s in ("inc", "corp", "ltd")):
        out.append(TagSuggestion(_BY_ID["medium"], 0.3, "Company appears to be an established corporation"))
    if any(s in name for s in ("labs", "studios", "works")):
        out.append(TagSuggestion(_BY_ID["small"], 0.4, "Company name suggests a small creative or tech shop"))
    return out


def suggest_tags(app: Application, limit: int = MAX_SUGGESTIONS) -> list[TagSuggestion]:
    """Most confident tag suggestions for *app*, best first."""
    text = f"{app.company} {app.role}".lower()
    suggestions: list[TagSuggestion] = []
    suggestions += _keyword_suggestions(text, INDUSTRY_KEYWORDS, 0.4, 0.3, 0.9,
                                        "Company name matches {} industry keywords")
    suggestions += _keyword_suggestions(text, ROLE_KEYWORDS, 0.3, 0.4, 0.95,
                                        "Job title contains {} keywords")
    suggestions += _keyword_suggestions(text, SENIORITY_KEYWORDS, 0.2, 0.5, 0.9,
                                        "Job title indicates {} level")
    suggestions += _company_size_suggestions(app.company or "")
    if "remote" in text or "distributed" in text:
        suggestions.append(TagSuggestion(_BY_ID["remote"], 0.8, "Job posting mentions remote work"))

    existing = {t.id for t in app.tags}
    suggestions = [s for s in suggestions if s.tag.id not in existing]
    return sorted(suggestions, key=lambda s: -s.confidence)[:limit]
