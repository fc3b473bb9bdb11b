# Services package init
"""
Ponto Urbano Backend — Services Layer
=======================================

What:  Business logic between routes (HTTP) and the database / blob storage.
How:   Services receive an AsyncSession per call plus domain values, apply the
       rules and return ORM objects or schemas. They are built once per app by
       the ServiceContainer and reached through FastAPI dependencies.

Service Inventory:
    - BlobStorage (abstract): Interface for photo storage backends
    - LocalBlobStorage: Photos on the local disk, served from /uploads
    - CloudinaryBlobStorage: Photos on Cloudinary via its signed upload API
    - ImageService: Upload validation (size, real image format) and resizing
    - PasswordHasher: bcrypt hashing off the event loop
    - SessionStore (abstract) / MemorySessionStore: Server-side login sessions
    - UserService: Registration, login, profile updates
    - ReportService: Listing and creating reports, removing their photos
"""
