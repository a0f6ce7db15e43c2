# storefront/services/captcha_verifier.py
import requests
from requests import RequestException

from storefront.utils.settings import Settings, settings as default_settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CaptchaVerifier:
    """
    Weryfikacja tokenu hCaptcha.
    Bez sekretu w konfiguracji sprawdzenie jest pomijane (wygoda dev, nie domyslne zabezpieczenie prod).
    Jesli sekret jest ustawiony a hCaptcha nie odpowiada -> fail closed.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.hcaptcha_secret)

    def verify(self, token: str | None) -> bool:
        if not self.configured:
            return True

        if not token:
            return False

        try:
            resp = requests.post(
                self.settings.hcaptcha_verify_url,
                data={"response": token, "secret": self.settings.hcaptcha_secret},
                timeout=self.settings.captcha_timeout,
            )
            resp.raise_for_status()
            return resp.json().get("success") is True
        except (RequestException, ValueError) as e:
            logger.warning(f"hCaptcha verification unavailable: {e}")
            return False
