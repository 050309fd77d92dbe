import os
from dataclasses import dataclass, field
from typing import Dict


def _default_max_mistakes() -> Dict[str, int]:
    return {
        'easy': 10,
        'medium': 7,
        'hard': 5,
    }


@dataclass
class Config:
    """Configuration for the Decodey core"""

    # Player settings
    USER_ID: str = os.environ.get('DECODEY_USER_ID', 'default_user')
    DEFAULT_DIFFICULTY: str = os.environ.get('DECODEY_DEFAULT_DIFFICULTY', 'medium')

    # Mistake budget per difficulty (hints cost one mistake each)
    MAX_MISTAKES: Dict[str, int] = field(default_factory=_default_max_mistakes)

    # Glyph shown for letters that have not been revealed yet
    BLOCK_GLYPH: str = '█'

    # Seconds a writer waits for another connection's write lock before failing
    SQLITE_BUSY_TIMEOUT: float = float(os.environ.get('DECODEY_SQLITE_BUSY_TIMEOUT', '30'))

    # Seed the quotes table with the starter set when it is empty
    SEED_QUOTES: bool = os.environ.get('DECODEY_SEED_QUOTES', 'True').lower() == 'true'

    # Paths
    BASE_DIR: str = os.path.dirname(os.path.abspath(__file__))
    DATA_DIR: str = os.environ.get(
        'DECODEY_DATA_DIR', os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')
    )

    # Logging
    LOG_LEVEL: str = os.environ.get('DECODEY_LOG_LEVEL', 'INFO')
    LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    @property
    def LOG_DIR(self) -> str:
        return os.path.join(self.DATA_DIR, 'logs')

    # Database
    @property
    def DATABASE_URL(self) -> str:
        override = os.environ.get('DECODEY_DATABASE_URL')
        if override:
            return override
        return f'sqlite:///{os.path.join(self.DATA_DIR, "decodey.db")}'

    @property
    def SETTINGS_FILE(self) -> str:
        return os.path.join(self.DATA_DIR, 'user_settings.json')

    def max_mistakes_for(self, difficulty: str) -> int:
        """Mistake budget for a difficulty (unknown levels get the medium budget)"""
        return self.MAX_MISTAKES.get(difficulty, self.MAX_MISTAKES['medium'])

    def ensure_dirs(self):
        """Ensure directories exist"""
        os.makedirs(self.DATA_DIR, exist_ok=True)
        os.makedirs(self.LOG_DIR, exist_ok=True)


# Create global config instance
config = Config()
