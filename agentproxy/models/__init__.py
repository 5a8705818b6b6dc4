"""Wire models (OpenAI) and engine-native models."""
