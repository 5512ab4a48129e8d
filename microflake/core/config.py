from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "dev"
    WORKER_ID: int = 0
    DATACENTER_ID: int = 0
    EPOCH: int = 1483200000000
    MAX_BATCH_SIZE: int = 1000
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
