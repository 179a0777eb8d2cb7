"""Dependencies de autenticación para FastAPI"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict
from shared.auth.jwt_handler import decode_token


security = HTTPBearer()

SCANNER_ROLES = ('scanner', 'admin', 'coordinator')


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict:
    '''Obtener usuario actual desde el bearer token'''
    payload = decode_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid or expired token',
            headers={'WWW-Authenticate': 'Bearer'},
        )

    user_id = payload.get('sub') or payload.get('user_id')
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid token: missing subject',
        )

    return {
        'user_id': user_id,
        'email': payload.get('email'),
        'role': payload.get('role', 'user')
    }


async def get_current_admin(
    current_user: Dict = Depends(get_current_user)
) -> Dict:
    '''Requerir rol de administrador'''
    if current_user.get('role') != 'admin':
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Admin permissions required'
        )
    return current_user


async def get_current_scanner(
    current_user: Dict = Depends(get_current_user)
) -> Dict:
    '''Requerir un rol habilitado para validar en la entrada'''
    if current_user.get('role') not in SCANNER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Scanner permissions required'
        )
    return current_user
