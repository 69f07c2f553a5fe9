from flask import Flask, request, jsonify
from utils.env_utils import EnvManager
from config import ConfigManager
from advice_corpus import AdviceCorpus, NotFoundError, load_corpus
from pathlib import Path
from typing import Optional
import threading
import logging
import logging.handlers


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.handlers.RotatingFileHandler(
            'advice_api.log',
            maxBytes=10485760,
            backupCount=5
        ),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

CONFIG_FILE = "advice_config.json"

app = Flask(__name__)

_corpus = None
_corpus_lock = threading.Lock()


def resolve_source_path(config_file: str = CONFIG_FILE) -> Optional[Path]:
    """
    Environment override first, then an existing config file.

    None selects the bundled advice document.
    """
    config_path = Path(config_file)
    settings = EnvManager.get_corpus_settings(start=config_path.resolve().parent)
    if settings.get('source_path'):
        return Path(settings['source_path']).expanduser()
    if config_path.exists():
        return ConfigManager(config_file).get_source_path()
    return None


def get_corpus() -> AdviceCorpus:
    """Load the corpus on first use and share it between requests"""
    global _corpus
    if _corpus is None:
        with _corpus_lock:
            if _corpus is None:
                source_path = resolve_source_path()
                logger.info(f"Loading advice corpus from {source_path or 'bundled document'}")
                _corpus = load_corpus(source_path)
    return _corpus


@app.route('/')
@app.route('/health')
def health():
    try:
        corpus = get_corpus()
        return jsonify({
            'status': 'ok',
            'source': corpus.source_name,
            'category_count': len(corpus.categories),
            'entry_count': len(corpus)
        })
    except Exception as e:
        logger.error(f"Error in health: {str(e)}", exc_info=True)
        return jsonify({'status': 'error', 'error': str(e)}), 500


@app.route('/categories')
def list_top_categories():
    try:
        corpus = get_corpus()
        return jsonify({
            'path': '',
            'children': [c.to_dict(include_entries=False) for c in corpus.list_categories('')]
        })
    except Exception as e:
        logger.error(f"Error listing categories: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@app.route('/categories/<path:category_path>')
def show_category(category_path):
    try:
        corpus = get_corpus()
        category = corpus.get_category(category_path)
        return jsonify({
            'path': category.path,
            'category': category.to_dict(),
            'children': [c.to_dict(include_entries=False) for c in category.children]
        })
    except NotFoundError as e:
        logger.info(f"Lookup failed: {e}")
        return jsonify({'error': str(e)}), 404
    except Exception as e:
        logger.error(f"Error showing category {category_path}: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@app.route('/search')
def search():
    keyword = request.args.get('q', '')
    within = request.args.get('within')
    if not keyword.strip():
        return jsonify({'error': 'Query parameter q is required'}), 400

    try:
        results = get_corpus().search(keyword, within=within)
        logger.debug(f"Search {keyword!r} within {within!r}: {len(results)} matches")
        return jsonify({
            'query': keyword,
            'within': within,
            'count': len(results),
            'results': [entry.to_dict() for entry in results]
        })
    except NotFoundError as e:
        logger.info(f"Lookup failed: {e}")
        return jsonify({'error': str(e)}), 404
    except Exception as e:
        logger.error(f"Error searching for {keyword!r}: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@app.route('/code_refs/<path:token>')
def code_ref(token):
    try:
        results = get_corpus().find_code_ref(token)
        return jsonify({
            'token': token,
            'count': len(results),
            'results': [entry.to_dict() for entry in results]
        })
    except Exception as e:
        logger.error(f"Error looking up code ref {token!r}: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


if __name__ == '__main__':
    config = ConfigManager(CONFIG_FILE)
    log_level = EnvManager.get_corpus_settings().get('log_level') or config.get_log_level()
    logging.getLogger().setLevel(getattr(logging, log_level.upper(), logging.INFO))
    get_corpus()
    logger.info("Starting advice corpus API")
    app.run(host=config.get_host(), port=config.get_port())
