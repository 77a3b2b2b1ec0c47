"""All magic numbers and configuration constants."""

WORDS_PER_MINUTE = 150              # speaking rate used for duration estimates
BATCH_MAX_SECONDS = 120             # default estimated-duration ceiling per batch
GEMINI_BATCH_MAX_SECONDS = 90       # multi-speaker requests stay well under the vendor limit
MAX_SCRIPT_CHARS = 100_000          # longest script accepted by the engine
MAX_SPEAKER_NAME_WORDS = 3          # "Speaker: text" markers with longer names are continuation
NARRATOR_NAME = "Narrator"          # implicit speaker for unattributed text
TTS_RETRY_COUNT = 3                 # max attempts per synthesis call
TTS_RETRY_BASE_DELAY = 3.0          # seconds: base delay for exponential backoff
TTS_CALL_TIMEOUT = 120.0            # seconds: upper bound on one vendor call
FALLBACK_PRIMARY_TIMEOUT = 45.0     # seconds: primary budget before switching to the fallback engine
INTER_BATCH_DELAY = 1.5             # seconds: pause between batches (vendor rate limits)
TTS_RATE = "-10%"                   # edge-tts speech rate: -10% = 10% slower than default

PCM_SAMPLE_RATE = 24000             # Hz: raw PCM returned by OpenAI "pcm" and Gemini TTS
PCM_CHANNELS = 1
PCM_BITS_PER_SAMPLE = 16
WAV_HEADER_SIZE = 44                # canonical RIFF/WAVE header, one fmt + one data chunk

OPENAI_TTS_MODEL = "gpt-4o-mini-tts"
GEMINI_TTS_MODEL = "gemini-2.5-flash-preview-tts"

OUTPUT_DIR = "public/generated_podcasts"
AUDIO_URL_PREFIX = "/generated_podcasts"
DEFAULT_ENGINE = "openai"
DEFAULT_FORMAT = "mp3"
VERSION = "0.2.0"
