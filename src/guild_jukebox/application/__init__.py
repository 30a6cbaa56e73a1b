"""Application layer - resolver, playback controllers, registry and broadcaster."""
