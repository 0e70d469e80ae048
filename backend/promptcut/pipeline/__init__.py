# Edit pipelines
"""
Edit pipelines on top of ffmpeg.

- timecode: time expressions resolved against a probed duration
- overlay: free-form overlay prompts -> drawtext filters
- segments: split -> transform -> concat jobs (remove span, slow motion)
- subtitles: extract audio -> transcribe -> burn in
"""
