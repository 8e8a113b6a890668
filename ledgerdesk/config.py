"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pathlib import Path
from typing import List

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class AccountSeed(BaseModel):
    """ATM account created at startup"""
    account_id: str
    pin: str
    balance: str = "0.00"  # Decimal as string


class LedgerDeskConfig(BaseSettings):
    """LedgerDesk configuration"""
    
    # Flat-file storage
    data_dir: str = "."
    users_file: str = "users.csv"
    reservations_file: str = "reservations.csv"
    
    # Credential written when the users file is first created
    default_username: str = "admin"
    default_secret: str = "admin123"
    
    # PNR random suffix bounds (inclusive, always three digits)
    pnr_random_min: int = 100
    pnr_random_max: int = 999
    
    # ATM accounts, e.g. LEDGERDESK_ATM_ACCOUNTS='[{"account_id": "A", "pin": "1234", "balance": "100"}]'
    atm_accounts: List[AccountSeed] = []
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    session_timeout_minutes: int = 30
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    
    class Config:
        env_prefix = "LEDGERDESK_"
        env_file = ".env"
        case_sensitive = False
    
    @property
    def users_path(self) -> Path:
        return Path(self.data_dir) / self.users_file
    
    @property
    def reservations_path(self) -> Path:
        return Path(self.data_dir) / self.reservations_file


# Global configuration instance
config = LedgerDeskConfig()


def get_config() -> LedgerDeskConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerDeskConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerDeskConfig()
    return config
