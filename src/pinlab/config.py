from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional
class Board(BaseModel): usable_pins: List[int] = Field(default_factory=lambda: list(range(8, 14)))
class Limits(BaseModel):
    max_wait_ms: int = 10000; max_duty_percent: int = 100
    timer1_period_min_us: int = 10000; timer1_period_max_us: int = 50000
class ValidationSettings(BaseModel):
    tolerance_ms: int = 50; simultaneous_below_ms: int = 10; simultaneous_tolerance_ms: int = 100
    pwm_tolerance: int = 25; pass_score: int = 80
    interval_weight: float = 0.40; pin_weight: float = 0.25; state_weight: float = 0.25; pwm_weight: float = 0.10
class LiveSettings(BaseModel): step_delay_ms: int = 50; max_iterations: int = 1000
class LoggingSettings(BaseModel):
    enabled: bool = True; level: Literal['DEBUG','INFO','WARNING','ERROR'] = 'INFO'; file: Optional[str] = None
    modules: Dict[str, str] = Field(default_factory=dict)  # e.g. {runner: DEBUG}
class AppConfig(BaseModel):
    board: Board = Field(default_factory=Board); limits: Limits = Field(default_factory=Limits)
    validation: ValidationSettings = Field(default_factory=ValidationSettings); live: LiveSettings = Field(default_factory=LiveSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings); levels_path: str = 'config/levels.yaml'
