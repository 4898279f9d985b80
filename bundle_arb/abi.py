"""
ABI of the deployed bundle executor (flash loan arbitrage) contract.
"""

BUNDLE_EXECUTOR_ABI = [
    {
        "inputs": [],
        "name": "deposit",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "token1", "type": "address"},
            {"internalType": "address", "name": "token2", "type": "address"},
            {"internalType": "uint256", "name": "borrow_amount", "type": "uint256"},
            {"internalType": "address", "name": "router1", "type": "address"},
            {"internalType": "address", "name": "router2", "type": "address"},
        ],
        "name": "flashloan",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "logic1",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {"inputs": [], "stateMutability": "nonpayable", "type": "constructor"},
]
