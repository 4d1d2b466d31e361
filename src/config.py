from dataclasses import dataclass

@dataclass(frozen=True)
class AppConfig:
    debug: bool = True
    log_level: str = "INFO"  # "DEBUG" also logs ignored calls on unknown ids
    max_history: int = 50
    default_theme: str = "system"
