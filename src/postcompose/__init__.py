"""postcompose — template-driven social-media post composition.

Place up to four images or video clips into a fixed template (4-grid,
header + single media, header + 2x2 grid), adjust per-slot zoom and pan,
preview single frames, and export a 10 second, 30 fps video with an
optional fade-in and audio track. Posts can be declared in YAML
manifests.
"""
