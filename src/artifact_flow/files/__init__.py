"""Input file transcoding."""
