"""Device adapters: microphone capture, Piper synthesis and playback."""
