#!/bin/python3

#
# Copyright 2020-2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# Main entry point
#

import sys
import argparse
import locale
import time
# Import logging functions directly
from logging import basicConfig, info, warning, error
from logging import DEBUG, INFO

# Import from the flac2opus package
from flac2opus.foworker import FoWorker
from flac2opus import FoOpts, FoErr, FoConsts, FoException, __version__
import opeenc
from tqdm import tqdm
import traceback

def parse_bitrate(value):
	symbolic = {
		"auto": opeenc.OPUS_AUTO,
		"max": opeenc.OPUS_BITRATE_MAX,
	}
	if value.lower() in symbolic:
		return symbolic[value.lower()]
	try:
		return int(value, 10)
	except ValueError:
		raise argparse.ArgumentTypeError(f"invalid bitrate: {value!r}")

def parse_arguments(argv=None):
	parser = argparse.ArgumentParser(
		prog="flac2opus",
		description="Transcode a directory of FLAC tracks (an album) to gapless, "
			    "loudness normalized Opus files"
	)

	parser.add_argument("output_dir",
			    help="Directory to write the .opus files to")

	parser.add_argument("input_dir",
			    help="Directory containing the .flac files")

	parser.add_argument("-w", dest="warn_fatal", action="store_true",
			    help="Treat warnings as fatal errors")

	parser.add_argument("-b", dest="bitrate", type=parse_bitrate,
			    default=int(FoConsts.DEF_BITRATE),
			    help="Target bitrate in bps, or auto/max (default: %(default)s)")

	parser.add_argument("-i", dest="independent", action="store_true",
			    help="Encode tracks independently (not gapless), using track gain")

	parser.add_argument("--log", "-l", default=None,
			    help="Path to a log file (default: log to stderr)")

	parser.add_argument("--verbose", "-v", action="count", default=0,
			    help="Increase verbosity (can be used multiple times)")

	parser.add_argument("--version", action="version",
			    version=f"%(prog)s {__version__}")

	return parser.parse_args(argv)

def main(argv=None):
	# Parse command line arguments
	args = parse_arguments(argv)

	# Set up options based on arguments
	opts = FoOpts(0)  # Start with no options
	if args.warn_fatal:
		opts |= FoOpts.OWARNFATAL
	if args.independent:
		opts |= FoOpts.OINDEPENDENT

	# Set log level based on verbosity
	log_levels = [INFO, DEBUG]  # 0=INFO, 1+=DEBUG
	log_level = log_levels[min(args.verbose, len(log_levels)-1)]

	# Setup logging
	if args.log is not None:
		basicConfig(filename=args.log, level=log_level,
			    format='%(asctime)s - %(levelname)s - %(message)s')
	else:
		basicConfig(stream=sys.stderr, level=log_level,
			    format='%(asctime)s - %(levelname)s - %(message)s')

	# To make this program locale-aware, track order follows
	# the locale's collation.
	try:
		locale.setlocale(locale.LC_ALL, "")
	except locale.Error as err:
		warning("Could not set locale, using C collation: %s", err)

	start_time = time.monotonic()
	info("flac2opus %s starting...", __version__)
	info("Input: %s", args.input_dir)
	info("Output: %s", args.output_dir)
	info("Options: %r, bitrate: %s", opts, args.bitrate)
	info("Started on %s", time.ctime())

	# Track success/failure
	exit_code = 0

	try:
		with tqdm(unit="track", leave=False) as pbar:
			worker = FoWorker(opts, bitrate=args.bitrate)
			ret = worker.process_album(args.output_dir, args.input_dir, pbar=pbar)
			exit_code = ret.value

	except FoException as err:
		error("%s", err)
		exit_code = err.error.value if err.error is not FoErr.EOK else 1

	except KeyboardInterrupt:
		warning("Processing interrupted by keyboard interrupt")
		exit_code = 1

	except Exception as e:
		error("Unexpected error: %s", e)
		traceback.print_exc()
		exit_code = 1

	finally:
		end_time = time.monotonic()
		elapsed_time = end_time - start_time
		process_time = time.process_time()
		info("Finished in %f sec, process time: %f", elapsed_time, process_time)

	return exit_code

if __name__ == "__main__":
	sys.exit(main())
