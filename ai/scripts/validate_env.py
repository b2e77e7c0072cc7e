import os
import sys
import argparse
from pathlib import Path
from typing import List, Mapping, Tuple

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from studygen.generation.key_pool import KeyPool, PLACEHOLDER_KEYS  # noqa: E402

DOMAINS = ('PA', 'Nursing', 'Medical', 'GenEd')

required = {
    'server': ['ENVIRONMENT', 'HOST', 'PORT'],
}

# name -> (min, max)
int_ranges = {
    'PORT': (1, 65535),
    'GEMINI_TIMEOUT_MS': (1000, 600000),
    'GEMINI_THINKING_BUDGET': (0, 32768),
    'GENERATION_RETRY_ATTEMPTS': (1, 10),
    'GENERATION_RETRY_BASE_DELAY_MS': (0, 60000),
    'SYNTHESIS_MAX_OUTPUT_TOKENS': (256, 65536),
    'QUIZ_EXTENSION_MAX_OUTPUT_TOKENS': (256, 65536),
    'REMEDIATION_MAX_OUTPUT_TOKENS': (256, 65536),
    'FLASHCARD_EXTENSION_MAX_OUTPUT_TOKENS': (256, 65536),
    'STUDY_MAX_CHAR_COUNT': (1000, 2000000),
}


def collect_problems(env: Mapping[str, str]) -> Tuple[List[str], List[str]]:
    """Return ``(errors, warnings)`` for the given environment mapping."""
    errors = []
    warnings = []

    for cat, keys in required.items():
        for k in keys:
            if not env.get(k):
                errors.append(f'{cat}: Missing {k}')

    pool = KeyPool.from_env(env)
    if not len(pool):
        errors.append('gemini: no usable API key (set GEMINI_API_KEY, API_KEY or GEMINI_API_KEY_2..)')
    for name in ('GEMINI_API_KEY', 'API_KEY'):
        if env.get(name, '').strip() in PLACEHOLDER_KEYS:
            warnings.append(f'gemini: {name} holds a placeholder value and is ignored')

    for name, (low, high) in int_ranges.items():
        raw = env.get(name)
        if raw is None or raw == '':
            continue
        try:
            value = int(raw)
        except ValueError:
            errors.append(f'{name} must be an integer')
            continue
        if value < low or value > high:
            errors.append(f'{name} must be between {low} and {high}')

    temperature = env.get('GEMINI_TEMPERATURE')
    if temperature:
        try:
            t = float(temperature)
            if t < 0.0 or t > 2.0:
                errors.append('GEMINI_TEMPERATURE must be between 0.0 and 2.0')
        except ValueError:
            errors.append('GEMINI_TEMPERATURE must be a float')

    domain = env.get('STUDY_DEFAULT_DOMAIN')
    if domain and domain not in DOMAINS:
        errors.append(f"STUDY_DEFAULT_DOMAIN must be one of {'|'.join(DOMAINS)}")

    log_format = env.get('LOG_FORMAT', 'json').lower()
    if log_format not in ('json', 'text'):
        warnings.append('LOG_FORMAT should be json or text')

    if env.get('ENVIRONMENT') == 'production' and env.get('CORS_ORIGIN', '*') == '*':
        warnings.append('CORS_ORIGIN allows any origin in production')

    return errors, warnings


def main(argv=None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument('--strict', '-s', action='store_true', help='Convert warnings to failures')
    args = parser.parse_args(argv)

    load_dotenv(Path(__file__).parent.parent / '.env')
    errors, warnings = collect_problems(os.environ)

    if errors:
        print('\nENV validation failed:')
        for e in errors:
            print(' -', e)
        return 1

    if warnings:
        print('\nWarnings:')
        for w in warnings:
            print(' -', w)
        if args.strict:
            print('\nStrict mode enabled: treating warnings as errors')
            return 1

    print('\nAll critical validations passed')
    return 0


if __name__ == '__main__':
    sys.exit(main())
