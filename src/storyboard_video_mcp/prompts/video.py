"""Video generation prompt templates.

1. INITIAL_CLIP — wraps the storyboard instruction for the first clip.
   Variables: {instruction}.
2. CONTINUATION_CLIP — instruction for each extension round; restates that
   the new segment must match the subject already on screen.
   Variables: {instruction}, {round}, {total_rounds}.
"""

from __future__ import annotations

INITIAL_CLIP = """\
Commercial product video. Animate the reference image while keeping the \
product's shape, materials, colours and branding exactly as shown.

{instruction}"""

CONTINUATION_CLIP = """\
Continue this video seamlessly (segment {round} of {total_rounds}). The product, \
its proportions, materials, colours, lighting and camera style must stay \
visually identical to the footage so far. Do not introduce new products or \
change the setting abruptly.

{instruction}"""
