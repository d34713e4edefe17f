[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netboot"
version = "0.1.0"
description = "Building blocks for network booting: DHCPv4 options, DHCPv6 packets and responses, address pools and pcap files"
requires-python = ">=3.10"
dependencies = []
keywords = ["dhcp", "dhcpv6", "pxe", "netboot", "pcap", "networking"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: System :: Boot",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["netboot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
