"""Image-to-video web front-end backed by Google Veo."""
