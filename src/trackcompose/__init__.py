"""trackcompose — layered video timelines rendered through ffmpeg.

Fold multi-track, possibly overlapping video items into one gap-free
composition tree, lower the tree into a single ffmpeg filter graph, and
run/monitor the ffmpeg process that renders it.
"""
