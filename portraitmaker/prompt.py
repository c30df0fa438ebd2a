"""Portrait options and the instruction text sent to the image model."""

import re
import textwrap
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Type, TypeVar, Union

MAX_CAPTION_WORDS = 10
DEFAULT_TRIAD = ("#EF4444", "#3B82F6", "#EAB308")  # red, blue, yellow

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class LineStyle(str, Enum):
    THICK = "Thick Lines"
    MEDIUM = "Medium Lines"
    THIN = "Thin Lines"


class ContrastLevel(str, Enum):
    LOW = "Low Contrast"
    MEDIUM = "Medium Contrast"
    HIGH = "High Contrast"


class DetailLevel(str, Enum):
    SIMPLE = "Simple / Minimalist"
    BALANCED = "Balanced"
    DETAILED = "Detailed"


class ColorMode(str, Enum):
    BW = "Black & White"
    TRIAD = "3-Color Triad"
    FULL = "Full Color"


class FontStyle(str, Enum):
    SANS = "Modern Sans"
    SERIF = "Classic Serif"
    SCRIPT = "Elegant Script"
    BOLD = "Bold Impact"
    MINIMAL = "Minimalist"


E = TypeVar("E", bound=Enum)


def parse_choice(enum_cls: Type[E], value: Union[str, E]) -> E:
    """Accept an enum member, its value ("Thick Lines") or its name ("thick")."""
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for member in enum_cls:
        if text == member.value or text.upper() == member.name:
            return member
    choices = ", ".join(m.name.lower() for m in enum_cls)
    raise ValueError(f"Invalid {enum_cls.__name__} {value!r} (expected one of: {choices})")


def caption_words(text: str) -> List[str]:
    return text.split()


@dataclass
class PortraitOptions:
    """Style choices for one generation request."""

    line_style: LineStyle = LineStyle.MEDIUM
    contrast_level: ContrastLevel = ContrastLevel.HIGH
    detail_level: DetailLevel = DetailLevel.BALANCED
    color_mode: ColorMode = ColorMode.BW
    colors: Tuple[str, str, str] = field(default=DEFAULT_TRIAD)
    caption: str = ""
    font_style: FontStyle = FontStyle.SANS

    def __post_init__(self):
        self.line_style = parse_choice(LineStyle, self.line_style)
        self.contrast_level = parse_choice(ContrastLevel, self.contrast_level)
        self.detail_level = parse_choice(DetailLevel, self.detail_level)
        self.color_mode = parse_choice(ColorMode, self.color_mode)
        self.font_style = parse_choice(FontStyle, self.font_style)

        colors = tuple(self.colors)
        if len(colors) != 3:
            raise ValueError(f"Exactly 3 triad colors are required, got {len(colors)}")
        for color in colors:
            if not _HEX_COLOR.match(color):
                raise ValueError(f"Triad colors must look like #RRGGBB, got {color!r}")
        self.colors = tuple(c.upper() for c in colors)

        if len(caption_words(self.caption)) > MAX_CAPTION_WORDS:
            raise ValueError(f"Caption is limited to {MAX_CAPTION_WORDS} words")


def color_instruction(options: PortraitOptions) -> str:
    if options.color_mode is ColorMode.BW:
        return "Color: Strictly Pure Black (#000000) on White (#FFFFFF). No other colors."
    if options.color_mode is ColorMode.TRIAD:
        return (
            f"Color Palette: Use strictly these 3 colors: {', '.join(options.colors)}. "
            "Use solid flat shapes (Posterized/Pop-art style)."
        )
    return (
        "Color: Full Vibrant Color. Use a rich, diverse palette while maintaining a clean "
        "vector/digital illustration style. Bold and saturation-rich."
    )


def caption_instruction(options: PortraitOptions) -> str:
    """Typography block, empty when there is no caption."""
    caption = " ".join(caption_words(options.caption))
    if not caption:
        return ""
    return "\n".join([
        f'- Text Integration: Include the text "{caption}" in the image.',
        f"- Font Style: Use a {options.font_style.value} aesthetic for the typography.",
        "- Placement: Position the text naturally, likely at the bottom center or "
        "integrated into the stencil composition.",
        "- Consistency: Ensure the text color matches the portrait's color scheme.",
    ])


_TEMPLATE = textwrap.dedent("""\
    You are PortraitMaker AI, a professional digital portrait artist specializing in vector and stencil styles.

    Task: Convert the provided photo into a high-quality stylized portrait.

    Technical Requirements:
    - Art Style: Professional Vector/Stencil art. Sharp clean edges, bold shapes.
    - Line Weight: {line}.
    - Contrast: {contrast}.
    - Complexity: {detail}.
    - {color}
    - Background: Solid Pure White (#FFFFFF). No background objects or scenery.
    - Subject: Head and shoulders portrait. Maintain the likeness and character of the person.
    {caption}
    Output Format:
    - Return ONLY the generated image.
    - No photographic elements; the result must be clearly artistic/vectorized.
    """)


def build_instruction(options: PortraitOptions) -> str:
    """Render the model instruction for a set of options.

    The same options always give the same text.
    """
    caption = caption_instruction(options)
    return _TEMPLATE.format(
        line=options.line_style.value,
        contrast=options.contrast_level.value,
        detail=options.detail_level.value,
        color=color_instruction(options),
        caption=caption + "\n" if caption else "",
    )
