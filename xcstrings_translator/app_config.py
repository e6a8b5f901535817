"""Application configuration for the catalog translator."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import yaml
from aiolimiter import AsyncLimiter
from dotenv import load_dotenv
from openai import AsyncOpenAI

from xcstrings_translator.logging_config import setup_logger
from xcstrings_translator.skip_policy import SkipOptions
from xcstrings_translator.translation_backends import (
    DEFAULT_DEEPLX_ENDPOINT,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_OPENAI_MODEL,
    PROVIDERS,
    TranslationBackend,
    create_backend
)


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Core paths
    project_root: str
    catalog_path: Optional[str]
    output_path: Optional[str]
    report_path: str

    # Run configuration
    target_languages: List[str]
    skip_already_translated: bool
    skip_should_translate_false: bool
    request_delay: float
    request_timeout: float
    max_requests_per_minute: int
    reject_placeholder_mismatch: bool
    dry_run: bool

    # Provider configuration
    provider: str
    model_name: str
    gemini_model_name: str
    deeplx_endpoint: str

    # Language configuration
    language_codes: Dict[str, str]
    name_to_code: Dict[str, str]

    # Translation backend (None in dry-run mode)
    backend: Optional[TranslationBackend]

    @property
    def skip_options(self) -> SkipOptions:
        return SkipOptions(
            skip_already_translated=self.skip_already_translated,
            skip_should_translate_false=self.skip_should_translate_false
        )


def _compute_project_root() -> str:
    """Compute the project root directory."""
    script_real_path = os.path.realpath(__file__)
    script_dir = os.path.dirname(script_real_path)
    return os.path.abspath(os.path.join(script_dir, os.pardir))


def _find_dotenv_file(project_root: str) -> Optional[str]:
    """Return the .env file in the project root or docker/, if any."""
    dotenv_path_project_root = os.path.join(project_root, '.env')
    dotenv_path_docker_dir = os.path.join(project_root, 'docker', '.env')

    if os.path.exists(dotenv_path_project_root):
        return dotenv_path_project_root
    if os.path.exists(dotenv_path_docker_dir):
        return dotenv_path_docker_dir
    return None


def _load_yaml_config(project_root: str) -> Dict[str, Any]:
    """Load the YAML configuration file, falling back to defaults on any problem."""
    # TRANSLATOR_CONFIG_FILE (possibly set from .env) overrides the default 'config.yaml'.
    default_config_path = os.path.join(project_root, 'config.yaml')
    config_file = os.environ.get('TRANSLATOR_CONFIG_FILE', default_config_path)

    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            print(f"Tip: Copy config.example.yaml to '{default_config_path}' or set TRANSLATOR_CONFIG_FILE.",
                  file=sys.stderr)
            return config

        if not os.access(config_file, os.R_OK):
            print(f"Error: Configuration file '{config_file}' exists but is not readable. Check file permissions.",
                  file=sys.stderr)
            return config

        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)

    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except OSError as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    """Set up logger based on configuration."""
    log_config = config.get('logging') or {}
    log_level_str = log_config.get('log_level', 'INFO').upper()
    log_file_path = log_config.get('log_file_path', 'logs/translation_log.log')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _build_language_mappings(locales_list: List[Dict[str, str]]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Build language code mappings from supported locales."""
    language_codes: Dict[str, str] = {}
    name_to_code: Dict[str, str] = {}

    for locale in locales_list:
        code = locale.get('code')
        name = locale.get('name')
        if code and name:
            language_codes[code] = name
            name_to_code[name.lower()] = code

    return language_codes, name_to_code


def _parse_target_languages(value: Any) -> List[str]:
    """Accept a YAML list or a comma separated string of language codes."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [str(code).strip() for code in value if str(code).strip()]


def resolve_language_codes(languages: List[str], name_to_code: Dict[str, str]) -> List[str]:
    """Map language names from supported_locales (e.g. "German") to their codes; codes pass through."""
    return [name_to_code.get(language.lower(), language) for language in languages]


def _create_backend(
        provider: str,
        config: Dict[str, Any],
        dry_run: bool,
        language_codes: Dict[str, str],
        logger: logging.Logger
) -> Optional[TranslationBackend]:
    """Create the translation backend for ``provider`` unless running in dry-run mode."""
    if dry_run:
        logger.info("Running in dry-run mode, no translation backend will be initialized")
        return None

    if provider not in PROVIDERS:
        logger.critical("CRITICAL: Unknown provider '%s'. Expected one of: %s", provider, ", ".join(PROVIDERS))
        sys.exit(1)

    options: Dict[str, Any] = {
        'request_timeout': float(config.get('request_timeout', 60.0)),
        'language_names': language_codes
    }

    if provider == 'openai':
        api_key = os.environ.get('OPENAI_API_KEY')
        if not api_key:
            logger.critical("CRITICAL: OPENAI_API_KEY environment variable not found.")
            logger.critical("Please set OPENAI_API_KEY, choose another provider, or enable dry_run mode.")
            sys.exit(1)
        if not api_key.startswith('sk-'):
            logger.warning("Warning: OPENAI_API_KEY does not start with 'sk-'. This may be invalid.")
        try:
            options['client'] = AsyncOpenAI(api_key=api_key)
        except Exception as e:
            logger.critical("Failed to initialize OpenAI client: %s", str(e))
            sys.exit(1)
        options['model_name'] = config.get('model_name', DEFAULT_OPENAI_MODEL)
        options['rate_limiter'] = AsyncLimiter(max_rate=int(config.get('max_requests_per_minute', 60)),
                                               time_period=60)
        logger.info("OpenAI backend initialized with model '%s'", options['model_name'])

    elif provider == 'gemini':
        api_key = os.environ.get('GEMINI_API_KEY')
        if not api_key:
            logger.critical("CRITICAL: GEMINI_API_KEY environment variable not found.")
            logger.critical("Get a key from https://aistudio.google.com/app/apikey or enable dry_run mode.")
            sys.exit(1)
        options['api_key'] = api_key
        options['model_name'] = config.get('gemini_model_name', DEFAULT_GEMINI_MODEL)
        logger.info("Gemini backend initialized with model '%s'", options['model_name'])

    else:
        options['endpoint'] = os.environ.get('DEEPLX_ENDPOINT', config.get('deeplx_endpoint', DEFAULT_DEEPLX_ENDPOINT))
        logger.info("DeepLX backend initialized with endpoint '%s'", options['endpoint'])

    return create_backend(provider, **options)


def load_app_config(provider: Optional[str] = None, dry_run: Optional[bool] = None) -> AppConfig:
    """
    Load application configuration from the YAML file and environment variables.

    Args:
        provider: Provider chosen on the command line; overrides environment and file.
        dry_run: Dry-run flag from the command line; overrides environment and file.

    Returns:
        AppConfig: The loaded application configuration.
    """
    project_root = _compute_project_root()

    dotenv_path = _find_dotenv_file(project_root)
    if dotenv_path:
        load_dotenv(dotenv_path)

    config = _load_yaml_config(project_root)
    logger = _setup_logger_from_config(config)

    if dotenv_path:
        logger.info("Loaded environment variables from: %s", dotenv_path)
    else:
        logger.info("No .env file found in '%s' or its docker/ folder. Relying on system environment variables.",
                    project_root)

    locales_list = config.get('supported_locales', [])
    language_codes, name_to_code = _build_language_mappings(locales_list)

    if dry_run is None:
        dry_run = config.get('dry_run', False)
        if 'TRANSLATOR_DRY_RUN' in os.environ:
            dry_run = os.environ['TRANSLATOR_DRY_RUN'].strip().lower() in ('1', 'true', 'yes')
    if provider is None:
        provider = os.environ.get('TRANSLATOR_PROVIDER', config.get('provider', 'openai'))
    provider = provider.lower()
    skip_config = config.get('skip') or {}
    target_languages = resolve_language_codes(_parse_target_languages(config.get('target_languages')), name_to_code)

    backend = _create_backend(provider, config, dry_run, language_codes, logger)

    return AppConfig(
        project_root=project_root,
        catalog_path=config.get('catalog_path'),
        output_path=config.get('output_path'),
        report_path=config.get('report_path', os.path.join('logs', 'translation_report.log')),
        target_languages=target_languages,
        skip_already_translated=skip_config.get('already_translated', True),
        skip_should_translate_false=skip_config.get('do_not_translate', True),
        request_delay=float(config.get('request_delay', 0.1)),
        request_timeout=float(config.get('request_timeout', 60.0)),
        max_requests_per_minute=int(config.get('max_requests_per_minute', 60)),
        reject_placeholder_mismatch=config.get('reject_placeholder_mismatch', False),
        dry_run=dry_run,
        provider=provider,
        model_name=config.get('model_name', DEFAULT_OPENAI_MODEL),
        gemini_model_name=config.get('gemini_model_name', DEFAULT_GEMINI_MODEL),
        deeplx_endpoint=os.environ.get('DEEPLX_ENDPOINT', config.get('deeplx_endpoint', DEFAULT_DEEPLX_ENDPOINT)),
        language_codes=language_codes,
        name_to_code=name_to_code,
        backend=backend
    )
