"""Warning suppression configuration.

librosa and its decoders (soundfile, audioread) warn on every fallback
decode. Call suppress_audio_warnings() once in each process that decodes or
analyzes audio.
"""

import warnings


def suppress_audio_warnings(
    librosa: bool = True,
    numpy: bool = True,
    pysoundfile: bool = True,
) -> None:
    """Suppress common warnings from audio libraries.

    Args:
        librosa: Suppress librosa FutureWarnings
        numpy: Suppress numpy runtime/deprecation warnings
        pysoundfile: Suppress PySoundFile fallback warnings
    """
    if librosa:
        warnings.filterwarnings(
            'ignore',
            category=FutureWarning,
            module='librosa',
        )
        warnings.filterwarnings(
            'ignore',
            message='.*librosa.*',
            category=FutureWarning,
        )

    if pysoundfile:
        warnings.filterwarnings(
            'ignore',
            category=UserWarning,
            message='PySoundFile failed.*',
        )
        warnings.filterwarnings(
            'ignore',
            message='.*audioread.*',
        )

    if numpy:
        warnings.filterwarnings(
            'ignore',
            category=DeprecationWarning,
            module='numpy',
        )
        warnings.filterwarnings(
            'ignore',
            category=RuntimeWarning,
            message='.*(divide by zero|invalid value).*',
        )
