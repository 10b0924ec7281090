#!/usr/bin/env python3
"""
Domain list input and result output.
"""

import json
from pathlib import Path
from typing import Dict, List

from loguru import logger

from .errors import ConfigurationError

OUTPUT_FORMATS = ('plain', 'json')


def load_domain_list(path: str) -> List[str]:
    """Read one domain per line, skipping blank lines and # comments."""
    try:
        with open(path, 'r') as f:
            lines = f.readlines()
    except OSError as e:
        raise ConfigurationError(f"Error reading domain list {path}: {e}")

    domains = []
    for line in lines:
        line = line.strip()
        if line and not line.startswith('#'):
            domains.append(line)
    return domains


def format_results(results: Dict[str, List[str]], output_format: str = 'plain') -> str:
    """Render results as indented JSON or as plain per-domain blocks."""
    if output_format == 'json':
        return json.dumps(results, indent=2)

    lines = []
    for domain, urls in results.items():
        lines.append(f"Domain: {domain}")
        lines.extend(urls)
        lines.append("")
    return "\n".join(lines) + ("\n" if lines else "")


def write_results(output_file: str, results: Dict[str, List[str]], output_format: str = 'plain'):
    """Write formatted results to a file, creating parent directories."""
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        f.write(format_results(results, output_format))
    logger.info(f"Output written to {output_file}")


def print_results(results: Dict[str, List[str]], output_format: str = 'plain'):
    print(format_results(results, output_format), end='' if output_format == 'plain' else '\n')
