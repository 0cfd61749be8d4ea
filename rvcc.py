#!/usr/bin/env python3
"""rvcc - top-level CLI wrapper

Usage examples:
  ./rvcc.py input.txt -o out.asm
  ./rvcc.py input.txt --dump-dir data/out -v
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from rvcc.compiler import Compiler


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    ap = argparse.ArgumentParser(prog="rvcc", description="Compile a tiny integer language to RISC-V assembly")
    ap.add_argument("source", help="Input source file")
    ap.add_argument("-o", dest="output", required=False, help="Output assembly file (default: stdout)")
    ap.add_argument("--dump-dir", help="Write tokens, symbol tables, IR and assembly into this directory")
    ap.add_argument(
        "--materialize-rhs-imm",
        action="store_true",
        help="Load right-hand immediates of sub/mul into a register instead of emitting them literally",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = ap.parse_args(argv)

    level = logging.getLevelName(os.environ.get("RVCC_LOG_LEVEL", "WARNING").upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=logging.DEBUG if args.verbose else level)

    compiler = Compiler(materialize_rhs_immediates=args.materialize_rhs_imm, dump_dir=args.dump_dir)
    result = compiler.compile_file(args.source, args.output)
    if not result.success:
        for e in result.errors:
            print("Error:", e)
        return 1

    if args.output:
        print("Done:", args.output)
    else:
        sys.stdout.write(result.assembly or "")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
