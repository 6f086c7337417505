"""
Static port -> service and port -> known-risk lookup tables.

The risk statements are advisory heuristics keyed on the port number alone.
They are not verified findings.
"""

UNKNOWN_SERVICE = "Unknown service"
NO_KNOWN_VULNERABILITY = "No common vulnerabilities known"

COMMON_SERVICES = {
    21: "FTP",
    22: "SSH",
    23: "Telnet",
    25: "SMTP",
    53: "DNS",
    80: "HTTP",
    110: "POP3",
    143: "IMAP",
    443: "HTTPS",
    445: "SMB",
    1433: "MSSQL",
    1521: "Oracle DB",
    3306: "MySQL",
    3389: "RDP",
    5432: "PostgreSQL",
    5900: "VNC",
    8080: "HTTP Proxy",
}

COMMON_VULNERABILITIES = {
    21: "FTP service might allow anonymous login or be vulnerable to brute force",
    22: "SSH service might be configured with weak ciphers or vulnerable to brute force",
    23: "Telnet sends data in cleartext and is inherently insecure",
    25: "SMTP server might be vulnerable to relay attacks or enumeration",
    53: "DNS might be vulnerable to zone transfers or cache poisoning",
    80: "Web server might have various vulnerabilities (XSS, SQLi, etc)",
    443: "HTTPS might have SSL/TLS vulnerabilities or misconfiguration",
    445: "SMB/CIFS might be vulnerable to various attacks (EternalBlue, etc)",
    1433: "MSSQL database might be vulnerable to SQL injection",
    1521: "Oracle database might be vulnerable to TNS poisoning",
    3306: "MySQL database might be vulnerable to SQL injection",
    3389: "RDP might be vulnerable to BlueKeep or similar vulnerabilities",
    5432: "PostgreSQL database might be vulnerable to SQL injection",
    8080: "Web proxy might have various vulnerabilities",
}


def lookup_service(port: int) -> str:
    return COMMON_SERVICES.get(port, UNKNOWN_SERVICE)


def lookup_vulnerability(port: int) -> str:
    return COMMON_VULNERABILITIES.get(port, NO_KNOWN_VULNERABILITY)


def has_known_vulnerability(note: str) -> bool:
    return note != NO_KNOWN_VULNERABILITY
