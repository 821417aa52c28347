from pydantic_settings import BaseSettings

class ClientSettings(BaseSettings):
    base_url: str = "http://localhost:8000"
    message_poll_interval: float = 2.0
    presence_poll_interval: float = 5.0
    request_timeout: float = 10.0

    class Config:
        env_prefix = "PINCHAT_CLIENT_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

client_settings = ClientSettings()
