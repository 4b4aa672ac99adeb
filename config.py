"""
Application configuration
"""
import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Settings read from the environment, with development defaults"""
    # Auth
    SECRET_KEY: str = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    JWT_ALGORITHM: str = os.getenv('JWT_ALGORITHM', 'HS256')
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv('ACCESS_TOKEN_EXPIRE_MINUTES', '60'))

    # Bootstrap administrator, created at startup
    ADMIN_EMAIL: str = os.getenv('ADMIN_EMAIL', 'admin@hotel.local')
    ADMIN_PASSWORD: str = os.getenv('ADMIN_PASSWORD', 'admin123')
    ADMIN_NAME: str = os.getenv('ADMIN_NAME', 'Administrator')
    ADMIN_NATIONAL_ID: str = os.getenv('ADMIN_NATIONAL_ID', '00000000')

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')

    def __post_init__(self):
        if self.ACCESS_TOKEN_EXPIRE_MINUTES <= 0:
            raise ValueError("ACCESS_TOKEN_EXPIRE_MINUTES must be positive")
        self.LOG_LEVEL = self.LOG_LEVEL.upper()


settings = Settings()
