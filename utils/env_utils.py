import os
from pathlib import Path
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

CORPUS_PATH_VAR = 'ADVICE_CORPUS_PATH'
LOG_LEVEL_VAR = 'ADVICE_LOG_LEVEL'
SETTING_VARS = {'source_path': CORPUS_PATH_VAR, 'log_level': LOG_LEVEL_VAR}


class EnvManager:
    """Reads corpus settings from the environment and .env files"""

    @staticmethod
    def candidate_dirs(start: Optional[Path] = None) -> List[Path]:
        """
        Directories searched for .env, nearest first:
        1. The start directory (defaults to the current directory)
        2. The root of the git repository containing it
        3. Home directory
        """
        start = Path(start).resolve() if start else Path.cwd()
        dirs = [start]

        try:
            import git
            repo = git.Repo(start, search_parent_directories=True)
            dirs.append(Path(repo.working_dir))
        except Exception as e:
            logger.debug(f"No git repository above {start}: {e}")

        dirs.append(Path.home())

        unique = []
        for directory in dirs:
            if directory not in unique:
                unique.append(directory)
        return unique

    @staticmethod
    def find_env_file(start: Optional[Path] = None) -> Optional[Path]:
        for directory in EnvManager.candidate_dirs(start):
            env_path = directory / '.env'
            if env_path.is_file():
                logger.debug(f"Using .env file {env_path}")
                return env_path
        return None

    @staticmethod
    def load_env_file(env_path: Path) -> Dict[str, str]:
        """Parse KEY=VALUE lines; comments, blank lines and malformed lines are skipped"""
        env_vars = {}

        try:
            lines = Path(env_path).read_text(encoding='utf-8').splitlines()
        except OSError as e:
            logger.error(f"Error reading .env file: {e}")
            return env_vars

        for line in lines:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            key = key.strip()
            if key.startswith('export '):
                key = key[len('export '):].strip()
            env_vars[key] = value.strip().strip('"').strip("'")

        return env_vars

    @staticmethod
    def get_corpus_settings(start: Optional[Path] = None) -> Dict[str, Optional[str]]:
        """Corpus overrides: process environment first, then the nearest .env file"""
        settings = {name: os.getenv(var) for name, var in SETTING_VARS.items()}

        if not all(settings.values()):
            env_file = EnvManager.find_env_file(start)
            if env_file:
                env_vars = EnvManager.load_env_file(env_file)
                for name, var in SETTING_VARS.items():
                    settings[name] = settings[name] or env_vars.get(var)

        return settings
