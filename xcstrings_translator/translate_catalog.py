import argparse
import asyncio
import logging
import os
import signal
import sys
from dataclasses import replace
from typing import List, Optional

from tqdm import tqdm

from xcstrings_translator.app_config import AppConfig, load_app_config, resolve_language_codes
from xcstrings_translator.catalog import Catalog
from xcstrings_translator.exceptions import CatalogParseError, ConfigurationError
from xcstrings_translator.file_analysis import analyze_catalog, estimate_characters, estimate_cost
from xcstrings_translator.translation_engine import TranslationEngine, TranslationResult
from xcstrings_translator.translation_progress import TranslationProgress, TranslationStats
from xcstrings_translator.xcstrings_parser import load_catalog, save_catalog

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


class TqdmProgressReporter:
    """Progress sink that drives a tqdm bar from engine progress events."""

    def __init__(self, total: int, description: str):
        self.bar = tqdm(total=total, desc=description, unit="string")

    def __call__(self, progress: TranslationProgress) -> None:
        self.bar.set_postfix_str(f"{progress.key} [{progress.language}] {progress.action.value}", refresh=False)
        self.bar.update(progress.current - self.bar.n)

    def close(self) -> None:
        self.bar.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Translate an Xcode string catalog (.xcstrings) while protecting format placeholders."
    )
    parser.add_argument('catalog', nargs='?', help="Path to the .xcstrings file (default: catalog_path from config)")
    parser.add_argument('-t', '--target', dest='target_languages', nargs='+',
                        help="Target language codes or names, e.g. de fr vi (default: target_languages from config)")
    parser.add_argument('-o', '--output', help="Where to write the translated catalog (default: overwrite input)")
    parser.add_argument('--provider', choices=['openai', 'gemini', 'deeplx'], help="Translation provider")
    parser.add_argument('--dry-run', action='store_true', help="Analyze the catalog without translating")
    parser.add_argument('--no-skip-translated', action='store_true',
                        help="Retranslate strings whose value already differs from the source")
    parser.add_argument('--no-skip-do-not-translate', action='store_true',
                        help="Translate strings whose comment says \"do not translate\"")
    return parser.parse_args(argv)


def apply_arguments(app_config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Overlay command line arguments on the loaded configuration."""
    changes = {}
    if args.catalog:
        changes['catalog_path'] = args.catalog
    if args.output:
        changes['output_path'] = args.output
    if args.target_languages:
        changes['target_languages'] = resolve_language_codes(args.target_languages, app_config.name_to_code)
    if args.no_skip_translated:
        changes['skip_already_translated'] = False
    if args.no_skip_do_not_translate:
        changes['skip_should_translate_false'] = False
    return replace(app_config, **changes)


def log_analysis(app_config: AppConfig, catalog: Catalog) -> None:
    """Log what the catalog holds and what a run would cost."""
    analysis = analyze_catalog(catalog)
    logger.info("Catalog: %d string(s), source language '%s', languages: %s.",
                analysis.total_strings, analysis.source_language, ", ".join(analysis.available_languages))
    logger.info("Already translated: %d, marked do not translate: %d, needs translation: ~%d.",
                analysis.already_translated, analysis.should_not_translate, analysis.needs_translation)

    characters = estimate_characters(catalog, app_config.target_languages, app_config.skip_options)
    if app_config.backend is not None:
        cost = estimate_cost(characters, app_config.backend.cost_per_1000_chars)
        logger.info("About %d character(s) to translate with %s (estimated cost $%.4f).",
                    characters, app_config.backend.name, cost)
    else:
        logger.info("About %d character(s) to translate.", characters)


def write_report(report_path: str, stats: TranslationStats) -> None:
    """Write the run summary when there were failures; remove a stale report otherwise."""
    if stats.errors:
        report_dir = os.path.dirname(report_path)
        if report_dir:
            os.makedirs(report_dir, exist_ok=True)
        logger.info("Some strings failed to translate. Writing report to %s", report_path)
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(stats.summary())
            f.write("\n\nAll errors:\n")
            for error in stats.errors:
                f.write(f"- {error}\n")
    elif os.path.exists(report_path):
        os.remove(report_path)


async def run_translation(app_config: AppConfig, catalog: Catalog) -> TranslationResult:
    """Run the engine with a progress bar; SIGINT/SIGTERM cancel between strings."""
    engine = TranslationEngine(
        app_config.backend,
        request_delay=app_config.request_delay,
        request_timeout=app_config.request_timeout,
        reject_placeholder_mismatch=app_config.reject_placeholder_mismatch
    )
    targets = [lang for lang in dict.fromkeys(app_config.target_languages) if lang != catalog.source_language]
    reporter = TqdmProgressReporter(len(catalog.entries) * len(targets), "Translating")

    loop = asyncio.get_running_loop()
    installed_signals = []
    try:
        job = engine.start(catalog, app_config.target_languages, app_config.skip_options, reporter)
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, job.cancel)
                installed_signals.append(sig)
            except (NotImplementedError, RuntimeError):
                # Not available on this platform or outside the main thread.
                pass
        return await job
    finally:
        for sig in installed_signals:
            loop.remove_signal_handler(sig)
        reporter.close()


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function to orchestrate loading, translating and saving a catalog.
    """
    args = parse_args(argv)
    app_config = load_app_config(provider=args.provider, dry_run=True if args.dry_run else None)
    app_config = apply_arguments(app_config, args)

    if not app_config.catalog_path:
        logger.error("No catalog given. Pass a path or set catalog_path in config.yaml.")
        return EXIT_ERROR
    if not app_config.target_languages:
        logger.error("No target languages given. Use --target or set target_languages in config.yaml.")
        return EXIT_ERROR

    try:
        catalog = load_catalog(app_config.catalog_path)
    except CatalogParseError as parse_exc:
        logger.error("Failed to load catalog: %s", parse_exc)
        return EXIT_ERROR

    log_analysis(app_config, catalog)

    if app_config.dry_run:
        logger.info("[Dry Run] Would translate '%s' into: %s.",
                    app_config.catalog_path, ", ".join(app_config.target_languages))
        return EXIT_OK

    try:
        result = await run_translation(app_config, catalog)
    except ConfigurationError as config_exc:
        logger.error("Translation could not start: %s", config_exc)
        return EXIT_ERROR

    output_path = app_config.output_path or app_config.catalog_path
    if result.stats.translated > 0:
        save_catalog(result.catalog, output_path)
        logger.info("Translated catalog saved to '%s'.", output_path)
    else:
        logger.info("No new translations; '%s' was not written.", output_path)

    for line in result.stats.summary().splitlines():
        logger.info(line)
    write_report(os.path.join(app_config.project_root, app_config.report_path), result.stats)

    if result.cancelled:
        logger.warning("Translation was cancelled; the saved catalog is partial.")
        return EXIT_CANCELLED
    return EXIT_OK


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except Exception as main_exc:
        logger.critical("An unexpected error occurred during execution: %s", main_exc, exc_info=True)
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    run()
