from app import create_app
from models import db
from models.product import Product


DEMO_PRODUCTS = [
    ("P001", "AZUCAR BLANCA 1 KG"),
    ("P002", "ARROZ BLANCO 1 KG"),
    ("P003", "ACEITE VEGETAL 750 ML"),
    ("P004", "FRIJOL ROJO 1 LB"),
]


def run():
    app = create_app()
    with app.app_context():
        # ✅ Importante:
        # No usamos db.create_all() porque ya estamos trabajando con migraciones (Flask-Migrate).
        # Asegúrate de haber corrido: flask db upgrade
        created = 0
        for code, description in DEMO_PRODUCTS:
            p = db.session.query(Product).filter_by(code=code).first()
            if not p:
                db.session.add(Product(code=code, description=description, is_active=True))
                created += 1
            else:
                p.is_active = True

        db.session.commit()

        print("✅ Seed listo.")
        print(f"Productos de catálogo creados: {created}")


if __name__ == "__main__":
    run()
