"""Document builders shared by the tests."""


def purchase_doc(doc_ref, lines, *, date="2026-01-15", provider="DISTRIBUIDORA S.A.", nit="0614-010101-101-1"):
    return {
        "identification": {"date": date, "documentRef": doc_ref},
        "issuer": {"name": provider, "taxId": nit},
        "lines": lines,
    }


def sale_doc(doc_ref, lines, *, date="2026-01-16"):
    return {
        "identification": {"date": date, "documentRef": doc_ref},
        "lines": lines,
    }


def pline(code, qty, cost, description=""):
    return {"code": code, "description": description, "quantity": qty, "unitCost": cost}


def sline(code, qty, description=""):
    return {"code": code, "description": description, "quantity": qty}
