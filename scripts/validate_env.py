import os
import sys
import argparse
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / '.env')

errors = []
warnings = []

parser = argparse.ArgumentParser()
parser.add_argument('--strict', '-s', action='store_true', help='Convert warnings to failures')
args = parser.parse_args()
STRICT = args.strict

required = {
    'server': ['ENVIRONMENT', 'HOST', 'PORT'],
}


def check_presence(cat, keys):
    for k in keys:
        if not os.getenv(k):
            errors.append(f"{cat}: Missing {k}")


for cat, keys in required.items():
    check_presence(cat, keys)

try:
    port = int(os.getenv('PORT', '0'))
    if port < 1 or port > 65535:
        errors.append('PORT must be integer between 1 and 65535')
except ValueError:
    errors.append('PORT must be an integer')

log_format = os.getenv('LOG_FORMAT', 'json')
if log_format not in ('json', 'text'):
    errors.append("LOG_FORMAT must be 'json' or 'text'")

memory_enabled = os.getenv('SELECTION_MEMORY_ENABLED', 'true').lower() in ('1', 'true', 'yes')
backend = os.getenv('SELECTION_MEMORY_BACKEND', 'redis').lower()
if backend not in ('redis', 'memory'):
    errors.append("SELECTION_MEMORY_BACKEND must be 'redis' or 'memory'")
if memory_enabled and backend == 'redis':
    if not (os.getenv('REDIS_URL') or os.getenv('REDIS_HOST')):
        warnings.append('redis: neither REDIS_URL nor REDIS_HOST set; default host "redis" will be used')
    try:
        int(os.getenv('REDIS_PORT', '6379'))
    except ValueError:
        errors.append('REDIS_PORT must be an integer')
elif not memory_enabled:
    warnings.append('selection memory disabled; every limited round is drawn without history')

try:
    if int(os.getenv('SELECTION_MEMORY_TTL', '0')) < 0:
        errors.append('SELECTION_MEMORY_TTL must be >= 0')
except ValueError:
    errors.append('SELECTION_MEMORY_TTL must be an integer')

try:
    if int(os.getenv('BLANK_MAX_ATTEMPTS', '100')) < 1:
        errors.append('BLANK_MAX_ATTEMPTS must be >= 1')
except ValueError:
    errors.append('BLANK_MAX_ATTEMPTS must be an integer')

if errors:
    print('\nENV validation failed:')
    for e in errors:
        print(' -', e)
    sys.exit(1)

if warnings:
    print('\nWarnings:')
    for w in warnings:
        print(' -', w)
    if STRICT:
        print('\nStrict mode enabled: treating warnings as errors')
        sys.exit(1)

print('\nAll critical validations passed')
sys.exit(0)
