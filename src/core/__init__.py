"""Core domain package for smsrelay.

Core contains the polling cycle, the outbound/inbound/deletion queues, segment
reassembly and event dispatch without any subprocess or storage-specific code,
keeping the message lifecycle portable across modem adapters.
"""
