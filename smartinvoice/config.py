from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Uygulama ayarlari.
    Degerler .env dosyasindan okunur. .env dosyasi yoksa default degerler kullanilir.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Uygulama
    APP_NAME: str = "SmartInvoice"
    DEBUG: bool = True

    # Loglama seviyesi (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    LOG_LEVEL: str = "INFO"
    # Bos birakilirsa proje kokundeki logs/ klasoru kullanilir
    LOG_DIR: str = ""

    # Anahtar-deger deposu (tum faturalar tek bir JSON blob olarak tutulur)
    STORAGE_URL: str = "sqlite:///./smartinvoice.db"
    STORAGE_KEY: str = "smartinvoice-invoices"

    # AI fatura ayristirici (OpenAI uyumlu chat completions endpoint'i)
    AI_GATEWAY_URL: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    AI_API_KEY: str = ""
    AI_MODEL: str = "google/gemini-3-flash-preview"
    # Saniye cinsinden; istegi yapan katmanin zaman asimi
    AI_TIMEOUT: float = 30.0
    AI_RATE_LIMIT: str = "10/minute"

    # Diger tum endpoint'ler icin istemci basina genel limit
    RATE_LIMIT_DEFAULT: str = "120/minute"
    RATE_LIMIT_ENABLED: bool = True

    # Yeni fatura taslagi varsayilanlari
    DEFAULT_TAX_RATE: float = 18
    DEFAULT_DUE_DAYS: int = 30

    # Gosterim icin para birimi
    CURRENCY_SYMBOL: str = "₹"


# Tek bir settings nesnesi olustur, her yerde bunu kullan
settings = Settings()
