import os
from dotenv import load_dotenv
load_dotenv()


def _env_bool(name, default):
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///meetinsight.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_ENABLED = _env_bool("RQ_ENABLED", True)

    # completion service (OpenAI-compatible chat completions endpoint)
    LLM_GATEWAY_URL = os.getenv("LLM_GATEWAY_URL", "https://api.openai.com/v1/chat/completions")
    LLM_GATEWAY_API_KEY = os.getenv("LLM_GATEWAY_API_KEY")
    LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
    LLM_TIMEOUT_SEC = float(os.getenv("LLM_TIMEOUT_SEC", "300"))
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "65536"))
    CORRECTION_TEMPERATURE = 0.2
    ANALYSIS_TEMPERATURE = 0.5

    AUTOSAVE_DELAY_SEC = float(os.getenv("AUTOSAVE_DELAY_SEC", "0.8"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    RQ_ENABLED = False
    LLM_GATEWAY_URL = "https://gateway.test/v1/chat/completions"
    LLM_GATEWAY_API_KEY = "test-key"
    LLM_MODEL = "test-model"
    # long enough that tests flush explicitly instead of racing the timer
    AUTOSAVE_DELAY_SEC = 30.0
