import logging
import re

import requests
from bs4 import BeautifulSoup
from django.conf import settings

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
IDENTIFICATION_SELECTOR = (
    '[id*="identificacion"], [class*="identificacion"], '
    '[id*="cedula"], [class*="cedula"], '
    '[id*="documento"], [class*="documento"], '
    "b, strong, span, p, div"
)
IDENTIFICATION_PATTERNS = (
    re.compile(r"\b\d{8,11}\b"),
    re.compile(r"\b\d{1,3}[.,]?\d{3}[.,]?\d{3,4}\b"),
)
MIN_IDENTIFICATION_LENGTH = 8
MAX_IDENTIFICATION_LENGTH = 11


class Q10ExtractionError(ValueError):
    pass


def _url_prefixes():
    return tuple(getattr(settings, "Q10_URL_PREFIXES", ()))


def is_q10_certificate_url(value):
    value = (value or "").strip()
    return bool(value) and value.startswith(_url_prefixes())


def find_identification_in_text(text):
    for pattern in IDENTIFICATION_PATTERNS:
        for match in pattern.finditer(text or ""):
            digits = re.sub(r"\D", "", match.group(0))
            if MIN_IDENTIFICATION_LENGTH <= len(digits) <= MAX_IDENTIFICATION_LENGTH:
                return digits
    return None


def extract_identification_from_html(html):
    soup = BeautifulSoup(html or "", "html.parser")
    for element in soup.select(IDENTIFICATION_SELECTOR):
        identification = find_identification_in_text(element.get_text(" ", strip=True))
        if identification:
            return identification
    return find_identification_in_text(soup.get_text(" ", strip=True))


class Q10CertificateClient:
    def __init__(self, *, session=None, timeout=None):
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else getattr(settings, "Q10_REQUEST_TIMEOUT", 15.0)

    def extract_identification(self, url):
        if not is_q10_certificate_url(url):
            raise Q10ExtractionError("La URL no corresponde a un certificado Q10.")

        try:
            response = self.session.get(
                url.strip(),
                headers={"User-Agent": BROWSER_USER_AGENT},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("No se pudo consultar el certificado Q10 %s: %s", url, exc)
            raise Q10ExtractionError("No se pudo consultar el certificado Q10.") from exc

        identification = extract_identification_from_html(response.text)
        if identification is None:
            logger.info("No se encontro identificacion en el certificado Q10 %s", url)
        return identification
