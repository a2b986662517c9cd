import base64
from xml.sax.saxutils import escape

from schemas import DEFAULT_CARD_NAME, EncodedVector

WIDTH = 768
HEIGHT = 1024
FOOTER_LABEL = "PSY TAROT"

SVG_TEMPLATE = """<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" viewBox="0 0 {width} {height}">
  <defs>
    <radialGradient id="glow" cx="50%" cy="45%" r="60%">
      <stop offset="0%" stop-color="#3b2a12"/>
      <stop offset="100%" stop-color="#0a0a0a"/>
    </radialGradient>
  </defs>
  <rect x="0" y="0" width="{width}" height="{height}" fill="url(#glow)"/>
  <rect x="24" y="24" width="720" height="976" rx="28" fill="none" stroke="#d4a24c" stroke-width="4"/>
  <rect x="44" y="44" width="680" height="936" rx="20" fill="none" stroke="#d4a24c" stroke-width="1.5" stroke-opacity="0.6"/>
  <g transform="translate(384 420)" fill="none" stroke="#d4a24c">
    <circle r="170" stroke-width="2" stroke-opacity="0.5"/>
    <circle r="130" stroke-width="3"/>
    <circle r="18" fill="#d4a24c"/>
    <polygon points="0,-120 22,-53 85,-85 53,-22 120,0 53,22 85,85 22,53 0,120 -22,53 -85,85 -53,22 -120,0 -53,-22 -85,-85 -22,-53" stroke-width="2.5"/>
  </g>
  <text x="384" y="720" text-anchor="middle" font-family="Georgia, serif" font-size="52" fill="#f5deb3">{card_name}</text>
  <line x1="234" y1="760" x2="534" y2="760" stroke="#d4a24c" stroke-width="1.5"/>
  <text x="384" y="930" text-anchor="middle" font-family="Georgia, serif" font-size="26" letter-spacing="8" fill="#d4a24c">{footer}</text>
</svg>"""


def render_svg(card_name: str) -> str:
    """Render the placeholder card markup for a card name."""
    name = (card_name or "").strip() or DEFAULT_CARD_NAME
    return SVG_TEMPLATE.format(
        width=WIDTH,
        height=HEIGHT,
        card_name=escape(name),
        footer=FOOTER_LABEL,
    )


def synthesize(card_name: str) -> EncodedVector:
    """
    Build the placeholder image used when image generation is unavailable.

    The markup is UTF-8 encoded before base64 so Cyrillic card names survive.
    Same name in, same bytes out.
    """
    svg = render_svg(card_name)
    data = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return EncodedVector(data=data)
