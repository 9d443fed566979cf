"""Media attachment server.

Serves attachments embedded in media containers (fonts, subtitles, chapter
images) through a cached, deduplicated extraction pipeline, next to a thin
notification API.
"""
