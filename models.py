from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

INVENTORY_COUNTER = "inventory_no"

# descriptive fields an item update may replace; id, no and created_by never change
ITEM_FIELDS = (
    "kategori",
    "code_barang",
    "nama",
    "serial_number",
    "tanggal",
    "lokasi",
    "asal_barang",
    "status",
    "ukuran",
    "keterangan",
)


class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    items = relationship("InventoryItem", back_populates="creator")

    def public_fields(self):
        return {"id": self.id, "username": self.username, "email": self.email}


class Category(Base):
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class InventoryItem(Base):
    __tablename__ = 'inventory'

    id = Column(Integer, primary_key=True, index=True)
    no = Column(Integer, nullable=False, index=True)
    # plain copy of a category name, intentionally not a foreign key
    kategori = Column(String(255), nullable=False, index=True)
    code_barang = Column(String(255))
    nama = Column(String(255), nullable=False)
    serial_number = Column(String(255))
    tanggal = Column(String(255))
    lokasi = Column(String(255))
    asal_barang = Column(String(255))
    status = Column(String(255))
    ukuran = Column(String(255))
    keterangan = Column(Text)
    created_by = Column(Integer, ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    creator = relationship("User", back_populates="items")

    def to_dict(self):
        return {
            "id": self.id,
            "no": self.no,
            "kategori": self.kategori,
            "codeBarang": self.code_barang,
            "nama": self.nama,
            "serialNumber": self.serial_number,
            "tanggal": self.tanggal,
            "lokasi": self.lokasi,
            "asalBarang": self.asal_barang,
            "status": self.status,
            "ukuran": self.ukuran,
            "keterangan": self.keterangan,
        }


class InventoryCounter(Base):
    """Row every item insert locks before it reads the current max ``no``."""

    __tablename__ = 'inventory_counter'

    name = Column(String(64), primary_key=True)
    last_no = Column(Integer, nullable=False, default=0)
