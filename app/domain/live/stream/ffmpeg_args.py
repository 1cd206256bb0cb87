"""ffmpeg command line for a stream session.

The transcoder reads the browser's encoded audio from stdin and writes one
output per destination:
- HLS playlist with a sliding window of segments (always)
- archival recording (when recording is enabled)
- RTMP relay (when a relay URL is configured)
"""

from .stream_models import EncodingParams, StreamOutputs


def build_ffmpeg_args(
    ffmpeg_path: str,
    outputs: StreamOutputs,
    params: EncodingParams,
) -> list[str]:
    args = [
        ffmpeg_path,
        "-hide_banner",
        "-nostats",
        "-y",
        "-fflags", "+igndts",
        "-i", "pipe:0",
    ]

    audio = [
        "-ar", str(params.sample_rate),
        "-ac", str(params.channels),
    ]

    args += [
        "-c:a", params.audio_codec,
        "-b:a", params.audio_bitrate,
        *audio,
        "-f", "hls",
        "-hls_time", str(params.hls_segment_seconds),
        "-hls_list_size", str(params.hls_list_size),
        "-hls_flags", "delete_segments+append_list",
        "-hls_segment_filename", str(outputs.segment_pattern),
        str(outputs.playlist_path),
    ]

    if outputs.recording_path is not None:
        args += [
            "-c:a", params.recording_codec,
            *audio,
            "-f", params.recording_format,
            str(outputs.recording_path),
        ]

    if outputs.relay_url:
        args += [
            "-c:a", params.audio_codec,
            "-b:a", params.audio_bitrate,
            *audio,
            "-rtmp_buffer", "8192",
            "-rtmp_live", "live",
            "-f", "flv",
            outputs.relay_url,
        ]

    return args
