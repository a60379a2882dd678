from dupfile.config import ScanConfig

SCAN_MODE_HELP_TEXT = (
    "Scan mode:\n"
    "  quick (default) : above --threshold candidates, files with a unique size are\n"
    "                    never hashed (they cannot have a duplicate)\n"
    "  --no-quick      : hash every candidate (standard scan)\n"
    f"Default threshold: {ScanConfig.QUICK_SCAN_THRESHOLD} candidates\n"
)

QUARANTINE_HELP_TEXT = (
    "Keep the oldest file of every group and move the other copies to the quarantine folder.\n"
    "Always shows a preview and asks for confirmation unless --force is given.\n"
    "Quarantined files can be listed (--list-quarantine) and restored (--restore)."
)

EPILOG_TEXT = """
Examples:
  Find duplicates in Downloads folder
  %(prog)s -i ~/Downloads

  Only pictures, hash every file, 4 hashing threads
  %(prog)s -i ~/Pictures -x .jpg .png --no-quick --workers 4

  Move redundant copies to quarantine (with confirmation prompt)
  %(prog)s -i ~/Downloads --quarantine

  Same without confirmation, then show the quarantine folder
  %(prog)s -i ~/Downloads --quarantine --force --reveal

  Inspect and undo
  %(prog)s --list-quarantine
  %(prog)s --restore ~/Documents/DupFile/quarantine/report.pdf

  Send everything in quarantine to the system trash
  %(prog)s --purge-quarantine

  Set DUPFILE_HOME (or use --data-dir) to keep the index and quarantine in one folder.
"""
