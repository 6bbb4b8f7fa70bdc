"""Query identities shared by pages, widgets and dialogs."""

LEADS = ("leads",)
LEAD_REFERENCES = ("leadReferences",)
DEVIS = ("devis",)
LATEST_DEVIS = ("latestDevisList",)
USERS = ("users",)
