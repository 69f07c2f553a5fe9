import pytest
from pathlib import Path
import tempfile
import json
import os
import sys

# Add the project root to Python path
sys.path.append(str(Path(__file__).parent.parent))

from advice_corpus import AdviceCorpus

SAMPLE_DOCUMENT = """Preamble text that belongs to no category.

# Naming
Names matter.
- **snake_case**: Use `snake_case` for functions.
- **Constants**: UPPERCASE for module constants.

# OOP
- **Composition**: Prefer composition over inheritance.
## Inheritance
- **Call super()**: Use `super().__init__()` in every subclass.
  - Cooperative mixins depend on it.
## Properties
- **Use @property**: Expose computed values with `@property`, a Decorator.
  ```
  @property
  def area(self):
      return self.w * self.h
  ```

# Decorators
- **functools.wraps**: Keep metadata with `@functools.wraps` in each decorator.
- Plain bullet without a bold title
"""


@pytest.fixture
def sample_document():
    """Fixture that provides a small well-formed advice document."""
    return SAMPLE_DOCUMENT


@pytest.fixture
def sample_corpus(sample_document):
    return AdviceCorpus.load(sample_document)


@pytest.fixture
def bundled_document():
    """Path of the advice document shipped with the project."""
    return Path(__file__).parent.parent / "python_coding_advice.md"


@pytest.fixture
def temp_document_file(sample_document):
    """Fixture that writes the sample document to a temporary file."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.md', delete=False, encoding='utf-8') as f:
        f.write(sample_document)
        document_path = f.name

    yield document_path
    # Cleanup
    if os.path.exists(document_path):
        Path(document_path).unlink()


@pytest.fixture
def temp_config_file(tmp_path):
    """Fixture that creates a config file pointing at a relative document path."""
    config_path = tmp_path / "advice_config.json"
    config_path.write_text(json.dumps({
        "source_path": "docs/advice.md",
        "host": "0.0.0.0",
        "port": 8080,
        "log_level": "debug"
    }, indent=2))
    return config_path
