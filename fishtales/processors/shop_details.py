"""
Shop website details extraction

Pulls contact and storefront signals out of a shop's home page: an email
address, whether it sells online, whether it publishes fishing reports, and
which social platforms it links to.
"""

import re
from typing import Optional
from urllib.parse import urljoin

from fishtales.core.base import (
    Blocked,
    NavigationFailed,
    PageDocument,
    PageFetcherInterface,
    ShopDetails,
)
from fishtales.core.logging import get_logger


EMAIL_REGEX = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')

SHOP_KEYWORDS = ["shop", "store", "buy", "products", "cart", "checkout"]

SOCIAL_MEDIA_MAP = [
    ("facebook.com", "Facebook"),
    ("instagram.com", "Instagram"),
    ("linkedin.com", "LinkedIn"),
    ("tiktok.com", "TikTok"),
    ("vimeo.com", "Vimeo"),
    ("whatsapp.com", "WhatsApp"),
    ("wa.me", "WhatsApp"),
    ("x.com", "X (Twitter)"),
    ("twitter.com", "X (Twitter)"),
    ("youtube.com", "YouTube"),
]

NO_EMAIL = "No Email"
ERROR_LOAD_FAILED = "Page load failed"
ERROR_EMAIL = "Errored while checking for an email"
ERROR_SHOP = "Errored while checking for an online shop"
ERROR_REPORT = "Errored while checking for reports"
ERROR_SOCIAL = "Error while checking for social media"


def blocked_details(status: int) -> ShopDetails:
    message = f"Blocked or Forbidden link (HTTP {status})"
    return ShopDetails(email=message, sells_online=message, fishing_report=message, social_media=message)


def load_failed_details() -> ShopDetails:
    return ShopDetails(
        email=ERROR_LOAD_FAILED,
        sells_online=ERROR_LOAD_FAILED,
        fishing_report=ERROR_LOAD_FAILED,
        social_media=ERROR_LOAD_FAILED,
    )


def error_details() -> ShopDetails:
    return ShopDetails(
        email=ERROR_EMAIL,
        sells_online=ERROR_SHOP,
        fishing_report=ERROR_REPORT,
        social_media=ERROR_SOCIAL,
    )


class ShopDetailsExtractor:
    """Scrapes ShopDetails from a shop's website with a PageFetcher"""

    def __init__(self):
        self.logger = get_logger('shop_details')

    async def scrape(self, fetcher: PageFetcherInterface, url: str) -> ShopDetails:
        """
        Load `url` and extract its details.

        Blocked and unreachable sites produce fallback details instead of
        raising, so one bad website never stops a shop lookup.
        """
        try:
            response = await fetcher.load(url)
        except Blocked as e:
            return blocked_details(e.status)
        except NavigationFailed as e:
            self.logger.warning(f"Could not load shop website {url}: {e}")
            return load_failed_details()

        document = response.document
        return ShopDetails(
            email=await self.find_email(fetcher, document, url),
            sells_online=self.has_online_shop(document),
            fishing_report=self.publishes_fishing_report(document),
            social_media=self.social_media(document),
        )

    def email_from_href(self, document: PageDocument) -> Optional[str]:
        href = document.first_attribute('a[href^="mailto:"]', 'href')
        if not href:
            return None
        return href.replace("mailto:", "", 1).split("?")[0].strip() or None

    def email_from_text(self, document: PageDocument) -> Optional[str]:
        match = EMAIL_REGEX.search(document.body_text())
        return match.group(0) if match else None

    def contact_link(self, document: PageDocument, page_url: str) -> Optional[str]:
        href = document.first_attribute('a[href*="contact"]', 'href')
        return urljoin(page_url, href) if href else None

    async def find_email(self, fetcher: PageFetcherInterface, document: PageDocument, page_url: str) -> str:
        """mailto link first, then page text, then the contact page once"""
        email = self.email_from_href(document) or self.email_from_text(document)
        if email:
            return email

        contact_url = self.contact_link(document, page_url)
        if not contact_url:
            return NO_EMAIL

        try:
            contact = await fetcher.load(contact_url)
        except (Blocked, NavigationFailed) as e:
            self.logger.debug(f"Contact page {contact_url} unavailable: {e}")
            return ERROR_EMAIL

        return self.email_from_href(contact.document) or self.email_from_text(contact.document) or NO_EMAIL

    def has_online_shop(self, document: PageDocument) -> bool:
        return any(
            document.has_element_with_text('a', keyword) or document.has_element_with_text('button', keyword)
            for keyword in SHOP_KEYWORDS
        )

    def publishes_fishing_report(self, document: PageDocument) -> bool:
        return document.has_element_with_text('a', 'report')

    def social_media(self, document: PageDocument) -> str:
        hrefs = [href.lower() for href, _ in document.anchors()]
        found = []
        for domain, name in SOCIAL_MEDIA_MAP:
            if name not in found and any(domain in href for href in hrefs):
                found.append(name)
        return ", ".join(found)
