from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv(override=True)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Biz Maze Wallet API"
    # Application settings
    PORT: int = 8000
    HOST: str = "127.0.0.1"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]

    # SSL settings
    SSL_KEY: str | None = None
    SSL_CERT: str | None = None

    # SQLAlchemy database URL
    DATABASE_URL: str
    STORE_TIMEOUT_SECONDS: int = 5  # bound on every store round trip

    # Auth provider JWT (bearer tokens are issued by the external auth service)
    ENCODE_KEY: str | None = None
    ENCODE_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = "authenticated"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 3600 # 1 hour, only for locally minted tokens

    # Wallet verification
    NONCE_EXPIRY_SECONDS: int = 600 # 10 minutes

    # Debug settings
    DEBUG: bool = False

    class Config:
        env_file = ".env"

# Instantiate the settings
settings = Settings()
