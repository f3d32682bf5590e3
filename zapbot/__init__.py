"""ZapBot: WhatsApp chatbot auto-replies over the Evolution API."""
