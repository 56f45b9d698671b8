"""intentpay - cross-chain checkout orchestration over NEAR Intents."""

__version__ = "0.1.0"
