"""
Run one pasted movie through the ingest pipeline from the command line.

This script:
1) Reads the paste from a file (or stdin)
2) Parses it and matches it against the master-data registry
3) Checks the movie registry for the same code
4) Prints the parse/match summary as JSON

Nothing is written to the registries unless --save is given.

Usage:
    python -m scripts.ingest_paste paste.txt
    pbpaste | python -m scripts.ingest_paste --save
"""

import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from movie_ingest.config import get_settings
from movie_ingest.engine import IngestEngine
from movie_ingest.errors import IngestError


def build_arg_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description="Parse and match pasted movie metadata")
	parser.add_argument("path", nargs="?", help="File with the pasted data (default: stdin)")
	parser.add_argument("--save", action="store_true", help="Persist the movie (creates it, or merges into a duplicate with --merge)")
	parser.add_argument("--merge", action="store_true", help="Merge into the existing movie with the same code")
	parser.add_argument("--translate", action="store_true", help="Translate the Japanese title when no English title was given")
	parser.add_argument("--offline", action="store_true", help="Do not contact the registries (empty registry, no duplicate check)")
	return parser


def main(argv=None) -> int:
	args = build_arg_parser().parse_args(argv)
	settings = get_settings()

	# Sink level comes from settings so scripts and the API log alike
	logger.remove()
	logger.add(sys.stderr, level=settings.log_level.upper())

	raw = Path(args.path).read_text(encoding="utf-8") if args.path else sys.stdin.read()
	engine = IngestEngine(settings=settings) if args.offline else IngestEngine.from_settings(settings)

	logger.info("[1/3] Parsing and matching...")
	try:
		session = engine.prepare(raw)
	except IngestError as e:
		logger.error(f"[FAIL] {e.user_message} ({e})")
		return 1
	if args.translate:
		engine.translate_title(session)

	logger.info(f"[OK] {session.parsed.code} parsed as {session.source.value}")
	for line in engine.pending_summary(session):
		logger.info(f"  needs a decision: {line}")
	if session.duplicate.is_duplicate:
		logger.info(f"[!] {session.parsed.code} already exists (id {session.duplicate.existing_movie.id})")

	summary = session.to_dict()
	if args.save:
		logger.info("[2/3] Saving...")
		try:
			movie = engine.save(session, merge=args.merge)
		except IngestError as e:
			logger.error(f"[FAIL] {e.user_message} ({e})")
			return 1
		summary["movie"] = movie.to_wire()
		logger.info(f"[OK] Saved {movie.code}")
	else:
		summary["movie"] = engine.reconciler.build_movie(session.parsed, session.matched).to_wire()

	logger.info("[3/3] Summary")
	print(json.dumps(summary, ensure_ascii=False, indent=2))
	return 0


if __name__ == '__main__':
	sys.exit(main())
