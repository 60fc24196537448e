"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings
from typing import Optional


class BagLedgerConfig(BaseSettings):
    """Bag ledger configuration"""
    
    # Storage configuration
    database_url: str = "sqlite:///bag_ledger.db"  # memory:// for in-memory storage
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    # Collection metadata
    collection_name: str = "CryptoBags"
    collection_symbol: str = "CryptoBag"
    
    # Initial administrator account
    administrator: str = "admin"
    
    # Bag creation
    starting_price: int = 1000
    initial_rent: int = 0
    max_bag_id: int = 2**32 - 1  # identifiers must stay 32-bit representable
    
    # Pricing tiers (prices in the smallest currency unit)
    first_step_limit: int = 50000
    second_step_limit: int = 500000
    payout_percent: int = 85  # seller share of the sale price
    
    # Settlement: "push" delivers payouts immediately, "pull" credits them
    settlement_mode: str = "push"
    
    # Feature flags
    enable_audit_logging: bool = True
    
    class Config:
        env_prefix = "BAGS_"
        env_file = ".env"
        case_sensitive = False
    
    @field_validator("settlement_mode")
    @classmethod
    def _check_settlement_mode(cls, value: str) -> str:
        value = value.lower()
        if value not in ("push", "pull"):
            raise ValueError("settlement_mode must be 'push' or 'pull'")
        return value
    
    @field_validator("payout_percent")
    @classmethod
    def _check_payout_percent(cls, value: int) -> int:
        if not 0 < value <= 100:
            raise ValueError("payout_percent must be within (0, 100]")
        return value
    
    @field_validator("starting_price", "initial_rent", "max_bag_id")
    @classmethod
    def _check_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("value must be non-negative")
        return value
    
    @model_validator(mode="after")
    def _check_tiers(self) -> "BagLedgerConfig":
        # 115/100 only strictly raises prices of 7 or more
        if self.first_step_limit < 7:
            raise ValueError("first_step_limit must be at least 7")
        if self.first_step_limit >= self.second_step_limit:
            raise ValueError("first_step_limit must be below second_step_limit")
        return self


# Global configuration instance
config = BagLedgerConfig()


def get_config() -> BagLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BagLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = BagLedgerConfig()
    return config
