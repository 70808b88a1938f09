"""Configuration settings for the waste collection dashboard."""
import os
from dotenv import load_dotenv

load_dotenv()


def _float_env(name: str, default: str) -> float:
    return float(os.getenv(name, default))


class Config:
    # Record store RPC
    RECORD_STORE_BASE_URL: str = os.getenv("RECORD_STORE_BASE_URL") or "http://127.0.0.1:3000"
    RECORD_STORE_TOKEN: str = os.getenv("RECORD_STORE_TOKEN") or ""
    REQUEST_TIMEOUT_SECONDS: float = _float_env("REQUEST_TIMEOUT_SECONDS", "30")

    # County boundary overlay (URL or local path)
    BOUNDARY_GEOJSON_SOURCE: str = os.getenv("BOUNDARY_GEOJSON_SOURCE") or "Kakamega County.geojson"

    # Server Configuration
    PORT: int = int(os.getenv("PORT", "8000"))
    API_HOST: str = "127.0.0.1"

    # Bearer key for the data-entry endpoint
    API_KEY: str = os.getenv("TAKA_API_KEY", "taka-2025-secure-key")

    # Filter debounce window
    FILTER_DEBOUNCE_SECONDS: float = _float_env("FILTER_DEBOUNCE_SECONDS", "0.5")

    # Marker click: pan animation and popup delay
    CLICK_PAN_SECONDS: float = _float_env("CLICK_PAN_SECONDS", "0.6")
    CLICK_POPUP_DELAY_SECONDS: float = _float_env("CLICK_POPUP_DELAY_SECONDS", "0.4")

    # Selection coming from the dashboard layer
    SELECT_PAN_SECONDS: float = _float_env("SELECT_PAN_SECONDS", "0.5")
    SELECT_POPUP_DELAY_SECONDS: float = _float_env("SELECT_POPUP_DELAY_SECONDS", "0.3")

    # Outbound directions
    DIRECTIONS_BASE_URL: str = "https://www.google.com/maps/dir/?api=1&destination="

    # Map defaults
    MAP_TILES: str = "OpenStreetMap"
    MAP_FIT_PADDING: int = 30
    RECENT_RECORDS_LIMIT: int = 10

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls):
        try:
            required = ["RECORD_STORE_BASE_URL", "API_KEY"]
            missing = [var for var in required if not getattr(cls, var)]
            if missing:
                raise ValueError(f"Missing required environment variables: {', '.join(missing)}")
            for var in ["FILTER_DEBOUNCE_SECONDS", "CLICK_PAN_SECONDS", "CLICK_POPUP_DELAY_SECONDS",
                        "SELECT_PAN_SECONDS", "SELECT_POPUP_DELAY_SECONDS"]:
                if getattr(cls, var) < 0:
                    raise ValueError(f"{var} must not be negative")
            if cls.CLICK_POPUP_DELAY_SECONDS > cls.CLICK_PAN_SECONDS:
                raise ValueError("CLICK_POPUP_DELAY_SECONDS must not exceed CLICK_PAN_SECONDS")
        except AttributeError as e:
            raise ValueError(f"Configuration error: {e}")
