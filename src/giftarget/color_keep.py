"""Color palette reduction arguments for gifsicle.

Gifsicle (https://www.lcdf.org/gifsicle/):
- Uses --colors N flag to reduce palette to N colors (2 to 256)
- Dithering options: --dither, --no-dither
- Example: gifsicle --colors 64 --no-dither input.gif --output output.gif
"""

MAX_COLOR_TABLE_SIZE = 256
MIN_COLOR_TABLE_SIZE = 2


def validate_color_table_size(color_count: int) -> None:
    """Validate that *color_count* is a palette size gifsicle accepts.

    Raises:
        ValueError: If color count is outside 2..256
    """
    if not isinstance(color_count, int) or isinstance(color_count, bool):
        raise ValueError(f"Color count must be an integer, got {color_count!r}")

    if not MIN_COLOR_TABLE_SIZE <= color_count <= MAX_COLOR_TABLE_SIZE:
        raise ValueError(
            f"Color count must be between {MIN_COLOR_TABLE_SIZE} and "
            f"{MAX_COLOR_TABLE_SIZE}, got {color_count}"
        )


def build_gifsicle_color_args(color_count: int, dithering: bool = False) -> list[str]:
    """Build gifsicle command arguments for color reduction.

    Args:
        color_count: Target number of colors to keep
        dithering: Whether to enable dithering

    Returns:
        List of command line arguments; empty when the full 256-colour table
        is kept.
    """
    validate_color_table_size(color_count)

    if color_count >= MAX_COLOR_TABLE_SIZE:
        return []

    args = ["--colors", str(color_count)]
    args.append("--dither" if dithering else "--no-dither")
    return args
