"""
Jakamo order connector.

Bridges a local folder mailbox and the Jakamo purchase-order API:
- Sends order, order-change and status documents from the inbound folder
- Moves each sent file to the processed or failed folder
- Drains the order-response queue into the responses folder
"""
