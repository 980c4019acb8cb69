# listing_publisher/services/platforms/netgun.py
"""
netgun.pl adapter.

Laravel site: `_token` hidden input plus a mirrored `XSRF-TOKEN` cookie,
JSON image uploader, urlencoded listing form with array-style fields, and a
302 to `/promowanie-ogloszenia/<number>/<token>` after a listing is created.
"""

import logging
import re
from typing import Dict, List, Tuple

import requests

from listing_publisher.core.enums import PlatformName
from listing_publisher.core.exceptions import UploadError
from listing_publisher.schemas.listing import ListingRequest, UploadedImage
from listing_publisher.services.http import send, snippet
from listing_publisher.services.platforms.base import EncodedBody, PlatformAdapter

logger = logging.getLogger(__name__)

# Product category keyword -> netgun category slug (first substring match wins)
CATEGORY_MAPPING: Dict[str, str] = {
    'pistolet': 'pistolety',
    'pistolety': 'pistolety',
    'rewolwer': 'rewolwery',
    'rewolwery': 'rewolwery',
    'karabin': 'karabinki-automatyczne-szturmowe',
    'karabinek': 'karabinki-automatyczne-szturmowe',
    'strzelba': 'strzelby',
    'strzelby': 'strzelby',
    'shotgun': 'strzelby',
    'snajperka': 'karabiny-sniper',
    'pm': 'pistolety-maszynowe',
    'pistolet maszynowy': 'pistolety-maszynowe',
}
DEFAULT_CATEGORY = 'pistolety'


class NetgunAdapter(PlatformAdapter):

    platform = PlatformName.NETGUN

    token_field = "_token"
    token_cookie = "XSRF-TOKEN"

    login_path = "/login"
    new_listing_path = "/nowe-ogloszenie"
    upload_path = "/api/image-uploader"
    uploader_path = "/uploader/"
    promotion_path = "/promowanie-ogloszenia"
    listing_path = "/ogloszenie/"

    promotion_pattern = re.compile(r"promowanie-ogloszenia/(\d+)/([A-Za-z0-9]+)")
    success_phrases = (
        'promowanie-ogloszenia',
        'Ogłoszenie zostało dodane',
        'Twoje ogłoszenie zostało opublikowane',
    )

    payment_gateway = "przelewy24"
    default_transaction_type = "sell"   # sell, buy, exchange
    default_item_state = "USED"         # NEW, USED

    @property
    def base_url(self) -> str:
        return self.settings.NETGUN_BASE_URL.rstrip("/")

    @property
    def image_base_url(self) -> str:
        return self.settings.NETGUN_IMAGE_BASE_URL.rstrip("/")

    def credentials(self) -> Tuple[str, str]:
        return self.settings.NETGUN_USERNAME, self.settings.NETGUN_PASSWORD

    def login_form(self, token):
        username, password = self.credentials()
        return {
            '_token': token,
            'email': username,
            'password': password,
            'remember': 'on',
        }

    # --- images ---

    def upload_image(self, session: requests.Session, data_url: str, token: str) -> str:
        response = send(
            session,
            "POST",
            self.url(self.upload_path),
            timeout=self.settings.HTTP_TIMEOUT,
            headers=self.xhr_headers(token, referer=self.url(self.new_listing_path)),
            json={'image': data_url, 'name': ''},
        )
        if response.status_code >= 400:
            raise UploadError(f"Image uploader returned HTTP {response.status_code}: {snippet(response.text, 200)}")
        try:
            payload = response.json()
        except ValueError as e:
            raise UploadError(f"Image uploader returned non-JSON body: {snippet(response.text, 200)}") from e

        file_id = payload.get('file') if isinstance(payload, dict) else None
        if not file_id:
            raise UploadError(f"Unexpected response from image uploader: {payload}")
        return f"{self.image_base_url}{self.uploader_path}{file_id}"

    # --- listing form ---

    def map_category(self, category: str) -> str:
        category = (category or "").lower()
        for key, value in CATEGORY_MAPPING.items():
            if key in category:
                return value
        return DEFAULT_CATEGORY

    def build_description(self, description: str) -> str:
        shop_url = self.settings.NETGUN_SHOP_URL
        if not shop_url:
            return description or ""
        if not shop_url.startswith("http"):
            shop_url = f"https://{shop_url}"
        return f"Odwiedź również nasz sklep: {shop_url}\n\n" + (description or "")

    def build_form_payload(self, request: ListingRequest, images: List[UploadedImage], token: str, page_html: str = "") -> EncodedBody:
        attrs = request.attributes
        settings = self.settings

        # Pairs, not a dict: images[] and titles[] repeat once per image
        fields = [
            ('_token', token),
            ('name', request.title),
            ('transaction_type', attrs.get('transaction_type', self.default_transaction_type)),
            ('item_state', attrs.get('item_state', self.default_item_state)),
            ('category', attrs.get('netgun_category') or self.map_category(attrs.get('category', ''))),
            ('nickname', attrs.get('nickname', settings.NETGUN_NICKNAME)),
            ('city', attrs.get('city', settings.NETGUN_CITY)),
            ('province', attrs.get('province', settings.NETGUN_PROVINCE)),
            ('description', self.build_description(request.description)),
            ('price', str(request.price)),
            ('phone', attrs.get('phone', settings.NETGUN_PHONE)),
            ('email', attrs.get('email', settings.NETGUN_EMAIL)),
            ('url', attrs.get('url', settings.NETGUN_SHOP_URL)),
            ('terms', 'on'),
        ]
        for image in sorted(images, key=lambda i: i.upload_order):
            fields.append(('images[]', image.platform_url_or_id))
            fields.append(('titles[]', ''))

        logger.info(
            f"Built netgun form for subject {request.subject_id}: "
            f"category={fields[4][1]} price={request.price} images={len(images)}"
        )
        return EncodedBody(
            data=fields,
            headers=self.form_headers(referer=self.url(self.new_listing_path)),
        )

    # --- promotion step ---

    @property
    def confirmation_path(self) -> str:
        return self.promotion_path

    def confirmation_form(self, number, promotion_token, page_token):
        return {
            '_token': page_token,
            'announcement_number': number,
            'announcement_token': promotion_token,
            'payment_gateway': self.payment_gateway,
        }
