"""Normalization and similarity helpers for emails, handles and company names."""

from __future__ import annotations

import re
import unicodedata
from typing import Final

FREE_EMAIL_PROVIDERS: Final[frozenset[str]] = frozenset(
    {
        "gmail.com",
        "yahoo.com",
        "yahoo.co.uk",
        "yahoo.co.in",
        "yahoo.co.jp",
        "yahoo.fr",
        "yahoo.de",
        "hotmail.com",
        "hotmail.co.uk",
        "hotmail.fr",
        "outlook.com",
        "outlook.co.uk",
        "live.com",
        "live.co.uk",
        "msn.com",
        "protonmail.com",
        "protonmail.ch",
        "proton.me",
        "pm.me",
        "icloud.com",
        "me.com",
        "mac.com",
        "aol.com",
        "mail.com",
        "zoho.com",
        "zohomail.com",
        "fastmail.com",
        "fastmail.fm",
        "hey.com",
        "tutanota.com",
        "tutanota.de",
        "tuta.io",
        "gmx.com",
        "gmx.de",
        "gmx.net",
        "web.de",
        "yandex.com",
        "yandex.ru",
        "mail.ru",
        "inbox.com",
        "rediffmail.com",
        "qq.com",
        "163.com",
        "126.com",
        "sina.com",
        "naver.com",
        "daum.net",
        "hanmail.net",
        "rocketmail.com",
        "att.net",
        "sbcglobal.net",
        "comcast.net",
        "verizon.net",
        "cox.net",
        "charter.net",
        "earthlink.net",
        "optonline.net",
        "frontier.com",
        # disposable inboxes
        "mailinator.com",
        "guerrillamail.com",
        "tempmail.com",
        "throwaway.email",
        "sharklasers.com",
        "guerrillamailblock.com",
        "grr.la",
        "dispostable.com",
        "yopmail.com",
    }
)

_LEGAL_SUFFIX_RE: Final = re.compile(
    r"\b(inc\.?|incorporated|llc|ltd\.?|limited|co\.?|corp\.?|corporation|gmbh"
    r"|s\.?a\.?|plc|pty\.?|pvt\.?)(?=\s|$|[,.\-_])",
)
_PUNCTUATION_RE: Final = re.compile(r"[.,\-_]")

MIN_COMPANY_NAME_LENGTH: Final[int] = 2
CONTAINMENT_SCORE: Final[float] = 0.85


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_handle(handle: str) -> str:
    """Lower-case a username and drop a leading ``@`` (``@octocat`` -> ``octocat``)."""
    return handle.strip().removeprefix("@").lower()


def normalize_domain(domain: str) -> str:
    return domain.strip().lower().removeprefix("www.").rstrip(".")


def is_free_email_domain(domain: str) -> bool:
    return normalize_domain(domain) in FREE_EMAIL_PROVIDERS


def extract_company_domain(email: str) -> str | None:
    """Domain of ``email`` when it can identify a company.

    Consumer and disposable mail providers never identify a company.
    """
    _, sep, domain = email.strip().rpartition("@")
    if not sep or not domain:
        return None
    normalized = normalize_domain(domain)
    if "." not in normalized or is_free_email_domain(normalized):
        return None
    return normalized


def normalize_company_name(name: str) -> str:
    text = unicodedata.normalize("NFKC", name).lower().strip()
    text = text.removeprefix("@")
    text = _LEGAL_SUFFIX_RE.sub("", text)
    text = _PUNCTUATION_RE.sub(" ", text)
    return " ".join(text.split())


def company_name_similarity(a: str, b: str) -> float:
    """Score two company names in ``[0, 1]``.

    1.0 when the normalized forms are equal, 0.85 when one contains the other,
    otherwise the Jaccard index of their word sets.
    """
    left = normalize_company_name(a)
    right = normalize_company_name(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    if left in right or right in left:
        return CONTAINMENT_SCORE

    left_tokens = set(left.split())
    right_tokens = set(right.split())
    union = left_tokens | right_tokens
    if not union:
        return 0.0
    return len(left_tokens & right_tokens) / len(union)


def domain_to_company_name(domain: str) -> str:
    """``acme.io`` -> ``Acme``."""
    label = normalize_domain(domain).split(".")[0]
    return label[:1].upper() + label[1:]
