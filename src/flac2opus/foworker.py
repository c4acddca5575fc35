#
# Copyright 2020 - 2025 Nick Kossifidis <mickflemm@gmail.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later
#
# This file is part of flac2opus, a UoC Radio project.
# For more infos visit https://rastapank.radio.uoc.gr
#
# Album transcoding driver
#

from flac2opus import FoConsts, FoErr
from flac2opus.foalbum import FoAlbum
from flac2opus.fobuffer import FoSampleBuffer
from flac2opus.fodecoder import FoDecoder
from flac2opus.foencoder import FoEncoder
from flac2opus.fogain import FoLoudness

from logging import debug, info

class FoWorker:

	def __init__(self, options, bitrate: int = FoConsts.DEF_BITRATE,
		     decoder_class=FoDecoder, encoder_class=None):
		self.options = options
		self.bitrate = bitrate
		self.decoder_class = decoder_class
		# None means libopusenc through opeenc
		self.encoder_class = encoder_class
		self.loudness = FoLoudness(options)

	def process_album(self, out_dir, inp_dir, pbar=None):
		with FoAlbum(out_dir, inp_dir, self.options) as album:
			params = album.get_params()
			tracks = album.get_tracks()

			if pbar is not None:
				pbar.total = len(tracks)
				pbar.set_description("Encoding")

			with FoSampleBuffer(params.channels, params.max_blocksize) as buffer:
				with FoEncoder(params, self.bitrate, self.options,
					       self.encoder_class) as encoder:
					for track in tracks:
						with track:
							self._process_track(track, encoder, buffer)
							if pbar is not None:
								pbar.set_postfix_str(f"Last track: {track.get_name()}")
								pbar.update(1)
					encoder.close()
					info("Done, %d tracks in %d stream(s)", len(tracks),
					     encoder.get_num_sessions())
		return FoErr.EOK

	def _process_track(self, track, encoder, buffer):
		debug("Processing track:\n\t%s", track.inp_path)

		with self.decoder_class(track.inp_path) as decoder:
			stream_info = decoder.get_stream_info()
			scale, tags = self.loudness.process(decoder.get_comments(),
							    stream_info.bits_per_sample,
							    track.inp_path)

			# The stream is set up right before the first block is
			# written, or after the loop if the track had no samples.
			session_ready = False
			for block in decoder.blocks():
				if not session_ready:
					encoder.begin_track(track, tags, scale)
					session_ready = True
				pcm = buffer.fill(block, scale)
				encoder.write(pcm, block.shape[0])

			if not session_ready:
				debug("Empty track:\n\t%s", track.inp_path)
				encoder.begin_track(track, tags, scale)
			del tags
