from __future__ import annotations
from typing import Dict, List, Literal, Optional
import os, yaml
from pydantic import BaseModel, Field

Difficulty = Literal['beginner', 'intermediate', 'advanced']


class Level(BaseModel):
    id: int
    name: str
    description: str = ''
    target_code: str
    hint: str = ''
    difficulty: Difficulty = 'beginner'
    required_pins: List[int] = Field(default_factory=list)
    validation_loops: int = Field(default=1, ge=1)
    time_limit_ms: int = 60000
    requires_pwm: bool = False


class LevelBook:
    def __init__(self, levels: List[Level]):
        self.levels = sorted(levels, key=lambda L: L.id)
        self._by_id: Dict[int, Level] = {L.id: L for L in self.levels}

    def __len__(self) -> int: return len(self.levels)
    def get(self, level_id: int) -> Optional[Level]: return self._by_id.get(level_id)
    def all(self) -> List[Level]: return list(self.levels)
    def by_difficulty(self, difficulty: str) -> List[Level]: return [L for L in self.levels if L.difficulty == difficulty]

    def next_id(self, level_id: int) -> Optional[int]:
        ids = [L.id for L in self.levels]
        if level_id not in ids: return None
        i = ids.index(level_id)
        return ids[i + 1] if i + 1 < len(ids) else None

    def previous_id(self, level_id: int) -> Optional[int]:
        ids = [L.id for L in self.levels]
        if level_id not in ids: return None
        i = ids.index(level_id)
        return ids[i - 1] if i > 0 else None


def load_levels(path: str) -> LevelBook:
    if not os.path.exists(path):
        return LevelBook([])
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    items = data.get('levels', []) if isinstance(data, dict) else data
    return LevelBook([Level.model_validate(item) for item in items or []])
