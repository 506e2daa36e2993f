"""Built-in SOP definitions for local-SEO operations.

Pure data; ``sop_catalog`` turns these into persisted SOPTemplate rows the
first time a type is requested.

Each definition is a JSON-compatible dict:
    type, name, description, applicable_business_types, tasks[]

Each task:
    title, instructions, category, evidence_type, estimated_minutes,
    is_required, requires_owner_approval, applicable_business_types,
    order, depends_on (list of ``order`` numbers within the same SOP)
"""

from __future__ import annotations

from typing import Any

_ALL = ["RANK_RENT", "TRADITIONAL", "GMB_ONLY"]
_OWNED = ["TRADITIONAL", "GMB_ONLY"]


# ---------------------------------------------------------------------------
# New Location Setup
# ---------------------------------------------------------------------------

NEW_LOCATION_SETUP: dict[str, Any] = {
    "type": "NEW_LOCATION",
    "name": "New Location Setup",
    "description": "Complete checklist for setting up a new business location in local SEO ecosystem",
    "applicable_business_types": _ALL,
    "tasks": [
        {
            "title": "Create or Claim Google Business Profile",
            "instructions": (
                "1. Go to business.google.com\n"
                "2. Search for the business name and address\n"
                "3. If listing exists: click \"Claim this business\" and follow verification steps\n"
                "4. If no listing: click \"Add your business\" and enter all details\n"
                "5. Select the appropriate primary category\n"
                "6. Complete the verification process (postcard, phone, or email)\n"
                "7. Save the GBP URL for evidence"
            ),
            "category": "GBP_SETUP",
            "evidence_type": "URL",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 1,
            "depends_on": [],
        },
        {
            "title": "Set Primary Business Category",
            "instructions": (
                "1. Open Google Business Profile Manager\n"
                "2. Go to \"Edit profile\" → \"Business category\"\n"
                "3. Choose the MOST specific primary category that matches the business\n"
                "4. Tip: search competitor top-rankers to see what category they use\n"
                "5. Screenshot the selected category"
            ),
            "category": "GBP_SETUP",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 10,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 2,
            "depends_on": [1],
        },
        {
            "title": "Add Secondary Categories",
            "instructions": (
                "1. Open Google Business Profile Manager\n"
                "2. Go to \"Edit profile\" → \"Business category\"\n"
                "3. Click \"Add another category\"\n"
                "4. Add 2-5 relevant secondary categories\n"
                "5. Prioritize categories that reflect actual services offered\n"
                "6. Screenshot all selected categories"
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 10,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 3,
            "depends_on": [2],
        },
        {
            "title": "Configure Service Area",
            "instructions": (
                "1. Open Google Business Profile Manager\n"
                "2. Go to \"Edit profile\" → \"Location and areas\"\n"
                "3. Choose storefront, service area, or both\n"
                "4. For service area businesses, add specific cities/zip codes\n"
                "5. Limit to a realistic service radius (20-30 miles typical)\n"
                "6. Screenshot the service area configuration"
            ),
            "category": "GBP_SETUP",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 10,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 4,
            "depends_on": [1],
        },
        {
            "title": "Validate NAP Information",
            "instructions": (
                "1. Verify business name, address (USPS format) and phone are EXACTLY consistent\n"
                "2. Cross-check with website (if exists)\n"
                "3. Document the exact NAP format to use everywhere\n"
                "4. Paste NAP details as evidence"
            ),
            "category": "DOCUMENTATION",
            "evidence_type": "TEXT",
            "estimated_minutes": 10,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 5,
            "depends_on": [1],
        },
        {
            "title": "Upload Initial Photos",
            "instructions": (
                "1. Prepare at least 5-10 high-quality photos: logo, cover, interior, exterior, team\n"
                "2. Go to GBP → Photos\n"
                "3. Upload all photos with descriptive filenames\n"
                "4. Set logo and cover photo appropriately\n"
                "5. Screenshot the photo gallery"
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 6,
            "depends_on": [1],
        },
        {
            "title": "Write Business Description",
            "instructions": (
                "1. Write a 750-character description: services, service area, selling points\n"
                "2. Avoid promotional language or special characters\n"
                "3. Do NOT include URLs or phone numbers\n"
                "4. Go to GBP → Edit profile → Description\n"
                "5. Save and screenshot the published description"
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 15,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 7,
            "depends_on": [1],
        },
        {
            "title": "Set Up Services/Products",
            "instructions": (
                "1. Go to GBP → Edit profile → Services (or Products)\n"
                "2. Add ALL services the business offers, with descriptions and prices\n"
                "3. Group services into logical categories\n"
                "4. For products, add product photos\n"
                "5. Screenshot the complete services/products list"
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 8,
            "depends_on": [1],
        },
        {
            "title": "Configure Business Hours",
            "instructions": (
                "1. Go to GBP → Edit profile → Hours\n"
                "2. Set regular business hours for each day\n"
                "3. Add special hours for holidays if known\n"
                "4. Enable \"More hours\" for specific services if applicable\n"
                "5. Screenshot the hours configuration"
            ),
            "category": "GBP_SETUP",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 5,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 9,
            "depends_on": [1],
        },
        {
            "title": "Submit to Top Citation Directories",
            "instructions": (
                "1. Create listings on the top 10 citation sites (Yelp, Facebook, Apple Maps,\n"
                "   Bing Places, Yellow Pages, BBB, industry directories)\n"
                "2. Use the EXACT NAP format documented earlier\n"
                "3. Add consistent description and categories\n"
                "4. Document submission URLs"
            ),
            "category": "CITATIONS",
            "evidence_type": "TEXT",
            "estimated_minutes": 60,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 10,
            "depends_on": [5],
        },
        {
            "title": "Set Up Rank Tracking",
            "instructions": (
                "1. Choose a rank tracking tool (LocalFalcon, BrightLocal, etc.)\n"
                "2. Add the business location\n"
                "3. Track 5-10 primary keywords across local pack and organic results\n"
                "4. Set up grid tracking if using LocalFalcon\n"
                "5. Screenshot the tracking dashboard setup"
            ),
            "category": "TRACKING",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 11,
            "depends_on": [1],
        },
        {
            "title": "Request Initial Reviews",
            "instructions": (
                "1. Generate a Google review link (GBP → Share review form)\n"
                "2. Create a review request template message\n"
                "3. Send to 5-10 initial customers/contacts\n"
                "4. Document the review request process"
            ),
            "category": "REVIEWS",
            "evidence_type": "TEXT",
            "estimated_minutes": 15,
            "is_required": False,
            "requires_owner_approval": True,
            "applicable_business_types": _OWNED,
            "order": 12,
            "depends_on": [1],
        },
    ],
}


# ---------------------------------------------------------------------------
# GBP Suspension Recovery
# ---------------------------------------------------------------------------

SUSPENSION_RECOVERY: dict[str, Any] = {
    "type": "SUSPENSION_RECOVERY",
    "name": "GBP Suspension Recovery",
    "description": "Step-by-step process to recover from a Google Business Profile suspension",
    "applicable_business_types": _ALL,
    "tasks": [
        {
            "title": "Identify Suspension Type",
            "instructions": (
                "1. Log into Google Business Profile Manager\n"
                "2. Check the suspension notice\n"
                "3. Identify SOFT (profile disabled) vs HARD (profile removed) suspension\n"
                "4. Note any specific reason and related Google emails\n"
                "5. Document the suspension type and messages"
            ),
            "category": "DOCUMENTATION",
            "evidence_type": "TEXT",
            "estimated_minutes": 10,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 1,
            "depends_on": [],
        },
        {
            "title": "Complete Risk Factor Checklist",
            "instructions": (
                "Review and mark each potential issue: NAP inconsistencies, keyword stuffing,\n"
                "virtual office / PO Box, duplicate listings, review manipulation, wrong\n"
                "category, stock photos, thin website content, spammy links, recent edits."
            ),
            "category": "DOCUMENTATION",
            "evidence_type": "CHECKLIST",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 2,
            "depends_on": [1],
        },
        {
            "title": "Gather Evidence Documents",
            "instructions": (
                "Collect proof of legitimacy: business license, utility bill, bank statement,\n"
                "storefront and signage photos, team photos, lease agreement, branded vehicles.\n"
                "Compile into a single PDF or folder."
            ),
            "category": "DOCUMENTATION",
            "evidence_type": "FILE",
            "estimated_minutes": 30,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _OWNED,
            "order": 3,
            "depends_on": [1],
        },
        {
            "title": "Fix Identified Issues",
            "instructions": (
                "Before requesting reinstatement: clean up the business name, use the physical\n"
                "address, remove duplicates, request removal of fake reviews, align citations,\n"
                "replace stock photos, fix website issues. Document each fix."
            ),
            "category": "VERIFICATION",
            "evidence_type": "TEXT",
            "estimated_minutes": 60,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 4,
            "depends_on": [2],
        },
        {
            "title": "Submit Reinstatement Request",
            "instructions": (
                "1. Go to support.google.com/business/gethelp\n"
                "2. Select \"Disabled listing\" or \"Suspended profile\"\n"
                "3. Describe the business, why it should be reinstated and the corrections made\n"
                "4. Attach evidence documents\n"
                "5. Screenshot the submission confirmation"
            ),
            "category": "VERIFICATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 5,
            "depends_on": [3, 4],
        },
        {
            "title": "Submit Video Verification (if required)",
            "instructions": (
                "If Google requests video verification, record under 30 seconds showing the\n"
                "approach from the road, signage, interior, documents and staff. Upload to the\n"
                "provided link and note the submission time."
            ),
            "category": "VERIFICATION",
            "evidence_type": "TEXT",
            "estimated_minutes": 30,
            "is_required": False,
            "requires_owner_approval": False,
            "applicable_business_types": _OWNED,
            "order": 6,
            "depends_on": [5],
        },
        {
            "title": "Post-Reinstatement Cleanup",
            "instructions": (
                "Once reinstated: re-verify all GBP information, re-upload removed photos,\n"
                "update hours and services, avoid major changes for 30 days, and screenshot\n"
                "the restored live listing."
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 7,
            "depends_on": [5],
        },
        {
            "title": "30-Day Monitoring Period",
            "instructions": (
                "For 30 days after reinstatement: check GBP status daily, do not edit name or\n"
                "address, watch for negative SEO, respond to new reviews, then document the\n"
                "stable status."
            ),
            "category": "TRACKING",
            "evidence_type": "TEXT",
            "estimated_minutes": 10,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 8,
            "depends_on": [7],
        },
    ],
}


# ---------------------------------------------------------------------------
# Rebrand / Business Update
# ---------------------------------------------------------------------------

REBRAND: dict[str, Any] = {
    "type": "REBRAND",
    "name": "Rebrand / Business Update",
    "description": "Complete checklist for handling business name changes, moves, or major updates",
    "applicable_business_types": _OWNED,
    "tasks": [
        {
            "title": "Document New Brand Information",
            "instructions": (
                "Collect the new name, address, phone, website URL, logo files, brand colors\n"
                "and service offerings. Create a \"New NAP\" document with exact formatting."
            ),
            "category": "DOCUMENTATION",
            "evidence_type": "TEXT",
            "estimated_minutes": 15,
            "is_required": True,
            "requires_owner_approval": True,
            "applicable_business_types": _OWNED,
            "order": 1,
            "depends_on": [],
        },
        {
            "title": "Update Google Business Profile Name",
            "instructions": (
                "1. GBP Manager → Edit profile → Business name\n"
                "2. Use only the legal business name, no keywords or taglines\n"
                "3. Re-verify if the change is significant\n"
                "4. Screenshot before and after"
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 10,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _OWNED,
            "order": 2,
            "depends_on": [1],
        },
        {
            "title": "Update GBP Address",
            "instructions": (
                "1. GBP Manager → Edit profile → Location\n"
                "2. Enter the new address in USPS format\n"
                "3. Expect postcard re-verification; update service area if applicable\n"
                "4. Screenshot the new location settings"
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 10,
            "is_required": False,
            "requires_owner_approval": False,
            "applicable_business_types": _OWNED,
            "order": 3,
            "depends_on": [1],
        },
        {
            "title": "Update GBP Phone Number",
            "instructions": (
                "1. GBP Manager → Edit profile → Contact\n"
                "2. Update the primary and additional phone numbers\n"
                "3. Confirm call tracking still works\n"
                "4. Screenshot the new contact information"
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 5,
            "is_required": False,
            "requires_owner_approval": False,
            "applicable_business_types": _OWNED,
            "order": 4,
            "depends_on": [1],
        },
        {
            "title": "Re-evaluate Categories",
            "instructions": (
                "Check whether the rebrand changes the optimal primary and secondary\n"
                "categories; research competitors if the focus changed; screenshot the result."
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 15,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _OWNED,
            "order": 5,
            "depends_on": [2],
        },
        {
            "title": "Update Website Branding",
            "instructions": (
                "Update logo, title tags, footer/contact NAP, embedded maps, about page and\n"
                "LocalBusiness schema. Screenshot key updated pages."
            ),
            "category": "WEBSITE",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 60,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": ["TRADITIONAL"],
            "order": 6,
            "depends_on": [1],
        },
        {
            "title": "Update Schema Markup",
            "instructions": (
                "Update LocalBusiness schema with the new NAP and sameAs links, validate with\n"
                "the Google Rich Results Test and screenshot the results."
            ),
            "category": "WEBSITE",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": ["TRADITIONAL"],
            "order": 7,
            "depends_on": [6],
        },
        {
            "title": "Update All Citation Sites",
            "instructions": (
                "Export the citation list, update NAP on major directories first, remove\n"
                "duplicate or old listings and document each update. Allow 2-4 weeks to propagate."
            ),
            "category": "CITATIONS",
            "evidence_type": "TEXT",
            "estimated_minutes": 120,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _OWNED,
            "order": 8,
            "depends_on": [1],
        },
        {
            "title": "Monitor Review Impact",
            "instructions": (
                "Set review alerts, respond professionally to reviews mentioning the change,\n"
                "consider a GBP update post and document review trends weekly for a month."
            ),
            "category": "REVIEWS",
            "evidence_type": "TEXT",
            "estimated_minutes": 15,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _OWNED,
            "order": 9,
            "depends_on": [2],
        },
        {
            "title": "Track Ranking Impact",
            "instructions": (
                "Update rank tracking with the new name, snapshot a baseline, monitor weekly\n"
                "and produce a before/after ranking report after 30 days."
            ),
            "category": "TRACKING",
            "evidence_type": "TEXT",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _OWNED,
            "order": 10,
            "depends_on": [2],
        },
    ],
}


# ---------------------------------------------------------------------------
# Monthly Local SEO Maintenance
# ---------------------------------------------------------------------------

MAINTENANCE: dict[str, Any] = {
    "type": "MAINTENANCE",
    "name": "Monthly Local SEO Maintenance",
    "description": "Recurring monthly tasks to maintain and improve local SEO presence",
    "applicable_business_types": _ALL,
    "tasks": [
        {
            "title": "Create GBP Post",
            "instructions": (
                "Publish at least one GBP post (update, offer or event) with an image, a clear\n"
                "call-to-action and natural keywords. Screenshot the published post."
            ),
            "category": "CONTENT",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 15,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 1,
            "depends_on": [],
        },
        {
            "title": "Upload New Photos",
            "instructions": (
                "Add 2-5 new photos (recent projects, team, seasonal, behind-the-scenes) with\n"
                "descriptive alt text. Screenshot the updated gallery."
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 15,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 2,
            "depends_on": [],
        },
        {
            "title": "Monitor Q&A Section",
            "instructions": (
                "Answer pending questions, seed common Q&As, report spam and screenshot any\n"
                "new activity."
            ),
            "category": "GBP_OPTIMIZATION",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 10,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 3,
            "depends_on": [],
        },
        {
            "title": "Check Review Velocity",
            "instructions": (
                "Compare total reviews with last month, compute monthly velocity, compare to\n"
                "competitors and document totals, new reviews, average rating and negatives."
            ),
            "category": "REVIEWS",
            "evidence_type": "TEXT",
            "estimated_minutes": 10,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 4,
            "depends_on": [],
        },
        {
            "title": "Respond to New Reviews",
            "instructions": (
                "Respond to every unanswered review (thank, address concerns, offer resolution)\n"
                "and screenshot responses to negative reviews."
            ),
            "category": "REVIEWS",
            "evidence_type": "SCREENSHOT",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 5,
            "depends_on": [4],
        },
        {
            "title": "Check Competitor Rankings",
            "instructions": (
                "Search the top 3-5 keywords, record who appears in the local pack, note new\n"
                "competitors and their reviews, posts and photos."
            ),
            "category": "TRACKING",
            "evidence_type": "TEXT",
            "estimated_minutes": 20,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 6,
            "depends_on": [],
        },
        {
            "title": "Audit Citations",
            "instructions": (
                "Spot-check 5 major citation sites for NAP accuracy and duplicates, note new\n"
                "opportunities and document findings."
            ),
            "category": "CITATIONS",
            "evidence_type": "TEXT",
            "estimated_minutes": 20,
            "is_required": False,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 7,
            "depends_on": [],
        },
        {
            "title": "Generate Monthly Report",
            "instructions": (
                "Compile ranking changes, GBP insights (views, clicks, directions, calls),\n"
                "review summary, actions taken and next-month recommendations."
            ),
            "category": "TRACKING",
            "evidence_type": "FILE",
            "estimated_minutes": 30,
            "is_required": True,
            "requires_owner_approval": False,
            "applicable_business_types": _ALL,
            "order": 8,
            "depends_on": [4, 6],
        },
    ],
}


BUILTIN_SOP_DEFINITIONS: dict[str, dict[str, Any]] = {
    d["type"]: d
    for d in (NEW_LOCATION_SETUP, SUSPENSION_RECOVERY, REBRAND, MAINTENANCE)
}
