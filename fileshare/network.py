import socket
from typing import List

import psutil


def local_ipv4_addresses() -> List[str]:
	"""Non-loopback IPv4 addresses of the interfaces that are up."""
	addresses: List[str] = []
	try:
		stats = psutil.net_if_stats()
		for name, addrs in psutil.net_if_addrs().items():
			if name in stats and not stats[name].isup:
				continue
			for addr in addrs:
				if addr.family != socket.AF_INET:
					continue
				if addr.address.startswith("127."):
					continue
				if addr.address not in addresses:
					addresses.append(addr.address)
	except (OSError, psutil.Error):
		return []
	return addresses


def share_urls(port: int) -> List[str]:
	addresses = local_ipv4_addresses() or ["127.0.0.1"]
	return [f"http://{address}:{port}/" for address in addresses]
