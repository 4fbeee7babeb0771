from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./cutstock.db"
    LOG_LEVEL: str = "INFO"

    # Shopify: Admin API creates variants, Storefront API owns the cart
    PUBLIC_STORE_DOMAIN: str = ""
    SHOPIFY_API_VERSION: str = "2024-10"
    SHOPIFY_ADMIN_ACCESS_TOKEN: str = ""
    SHOPIFY_STOREFRONT_ACCESS_TOKEN: str = ""
    SHOPIFY_LOCATION_ID: str = "gid://shopify/Location/79990817057"

    # Make-to-order variants are always in stock
    VARIANT_STOCK_QUANTITY: int = 1000

    # Remote calls: creation is never retried. Cart attachment is retried only
    # when the request provably never reached the platform (connection refused, DNS)
    REMOTE_TIMEOUT_SECONDS: float = 15.0
    CART_ATTACH_MAX_ATTEMPTS: int = 1
    COMPENSATE_ORPHANED_VARIANTS: bool = False
    CART_COOKIE_NAME: str = "cart"

    # Pricing policy
    HIGH_PRECISION_SURCHARGE: float = 1.30

    class Config:
        env_file = ".env"


settings = Settings()
