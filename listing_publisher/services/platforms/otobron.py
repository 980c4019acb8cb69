# listing_publisher/services/platforms/otobron.py
"""
otobron.pl adapter.

WordPress site: WooCommerce `my-account` login guarded by a nonce field,
`/add-listing/` form posted as multipart text fields. Images are not uploaded
separately; each one travels inside the form as a base64 data URL string.
"""

import logging
from typing import List, Tuple

import requests
from bs4 import BeautifulSoup

from listing_publisher.core.enums import PlatformName
from listing_publisher.schemas.listing import ListingRequest, UploadedImage
from listing_publisher.services.platforms.base import EncodedBody, PlatformAdapter

logger = logging.getLogger(__name__)


class OtobronAdapter(PlatformAdapter):

    platform = PlatformName.OTOBRON

    token_field = "_wpnonce"
    login_token_field = "woocommerce-login-nonce"
    token_cookie = None  # WordPress does not mirror nonces into cookies

    login_path = "/my-account/"
    new_listing_path = "/add-listing/"
    listing_path = "/ogloszenie/"

    success_phrases = (
        'Ogłoszenie zostało dodane',
        'Ogłoszenie zostało opublikowane',
        'Dziękujemy za dodanie ogłoszenia',
    )
    session_expired_statuses = (401, 403)
    # WooCommerce sends a successful login back to my-account too
    logged_in_cookie_prefix = "wordpress_logged_in_"

    listing_type = "bron"
    category_id = 175
    default_condition = "Używana"
    default_options = ("Cena do negocjacji",)

    @property
    def base_url(self) -> str:
        return self.settings.OTOBRON_BASE_URL.rstrip("/")

    def credentials(self) -> Tuple[str, str]:
        return self.settings.OTOBRON_USERNAME, self.settings.OTOBRON_PASSWORD

    def login_form(self, token):
        username, password = self.credentials()
        return {
            'username': username,
            'password': password,
            'rememberme': 'forever',
            'woocommerce-login-nonce': token,
            '_wp_http_referer': self.login_path,
            'login': 'Zaloguj się',
        }

    def upload_image(self, session: requests.Session, data_url: str, token: str) -> str:
        # Inlined into the listing form, nothing to send yet
        return data_url

    def extract_hidden_fields(self, html: str) -> List[Tuple[str, str]]:
        """Hidden inputs of the add-listing form, so plugin-specific fields are echoed back."""
        if not html:
            return []
        soup = BeautifulSoup(html, "html.parser")
        token_input = soup.find("input", attrs={"name": self.token_field})
        form = token_input.find_parent("form") if token_input else None
        if form is None:
            form = soup.find("form", attrs={"method": lambda m: m and m.lower() == "post"})
        if form is None:
            return []

        fields = []
        for input_el in form.find_all("input", attrs={"type": "hidden"}):
            name = input_el.get("name")
            if name:
                fields.append((name, input_el.get("value", "")))
        return fields

    def build_form_payload(self, request: ListingRequest, images: List[UploadedImage], token: str, page_html: str = "") -> EncodedBody:
        attrs = request.attributes
        settings = self.settings

        values = [
            ('listing_type', attrs.get('listing_type', self.listing_type)),
            ('listing_category', str(attrs.get('category_id', self.category_id))),
            ('listing_title', request.title),
            ('listing_description', request.description or ""),
            ('listing_price', str(request.price)),
            ('listing_condition', attrs.get('condition', self.default_condition)),
            ('listing_email', attrs.get('email', settings.OTOBRON_EMAIL)),
            ('listing_phone', attrs.get('phone', settings.OTOBRON_PHONE)),
            ('listing_address', attrs.get('address', settings.OTOBRON_ADDRESS)),
            ('listing_lat', str(attrs.get('lat', settings.OTOBRON_LAT))),
            ('listing_lng', str(attrs.get('lng', settings.OTOBRON_LNG))),
        ]
        options = attrs.get('additional_options', self.default_options)
        if isinstance(options, str):
            options = [options]
        for option in options:
            values.append(('listing_options[]', option))
        for image in sorted(images, key=lambda i: i.upload_order):
            values.append(('listing_gallery[]', image.platform_url_or_id))
        values.append(('submit_listing', '1'))

        ours = {name for name, _ in values} | {self.token_field}
        hidden = [(name, value) for name, value in self.extract_hidden_fields(page_html) if name not in ours]

        # (None, value) parts make requests send plain multipart text fields
        parts = [(name, (None, value)) for name, value in hidden]
        parts.append((self.token_field, (None, token)))
        parts.extend((name, (None, value)) for name, value in values)

        logger.info(
            f"Built otobron form for subject {request.subject_id}: "
            f"hidden={len(hidden)} price={request.price} images={len(images)}"
        )
        # requests sets the multipart boundary itself
        return EncodedBody(
            files=parts,
            headers=self.form_headers(referer=self.url(self.new_listing_path), content_type=None),
        )
